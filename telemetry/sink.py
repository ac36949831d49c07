from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, IO, List, Optional, Protocol, Sequence

from common.types import CameraSnapshot, Pose3d, poses_to_lists
from common.utils import now_ms


class TelemetrySink(Protocol):
    """Where the vision cycle sends its diagnostics. Calls must not block."""

    def record(self, key: str, poses: Sequence[Pose3d]) -> None: ...

    def process_inputs(self, key: str, snapshot: CameraSnapshot) -> None: ...

    def record_alert(self, key: str, text: str, active: bool) -> None: ...


class MemoryTelemetrySink:
    """
    Keeps the latest value for every key. Useful for tests and for hosts that
    publish telemetry themselves (e.g. NetworkTables).
    """

    def __init__(self) -> None:
        self.poses: Dict[str, List[Pose3d]] = {}
        self.inputs: Dict[str, CameraSnapshot] = {}
        self.alerts: Dict[str, Dict[str, Any]] = {}
        self.writes = 0

    def record(self, key: str, poses: Sequence[Pose3d]) -> None:
        self.poses[key] = list(poses)
        self.writes += 1

    def process_inputs(self, key: str, snapshot: CameraSnapshot) -> None:
        self.inputs[key] = snapshot
        self.writes += 1

    def record_alert(self, key: str, text: str, active: bool) -> None:
        self.alerts[key] = {"text": text, "active": bool(active)}
        self.writes += 1


class JsonlTelemetrySink:
    """
    Appends one JSON row per record to a JSONL file (line-buffered):

      {"t": ms, "key": "AprilTagVision/Camera0/RobotPoses", "poses": [[x,y,z,qw,qx,qy,qz], ...]}
      {"t": ms, "key": "AprilTagVision/Camera0", "inputs": {...CameraSnapshot.to_dict()...}}
      {"t": ms, "key": "AprilTagVision/Alerts/Camera0", "alert": {"text": "...", "active": true}}

    `log_inputs=False` skips the raw input rows (they dominate file size).
    """

    def __init__(self, path: str, *, log_inputs: bool = True):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.log_inputs = log_inputs
        self._f: Optional[IO[str]] = self.path.open("a", buffering=1, encoding="utf-8")

    def _write(self, row: Dict[str, Any]) -> None:
        if self._f is None:
            raise RuntimeError(f"telemetry sink is closed: {self.path}")
        self._f.write(json.dumps(row) + "\n")

    def record(self, key: str, poses: Sequence[Pose3d]) -> None:
        self._write({"t": now_ms(), "key": key, "poses": poses_to_lists(poses)})

    def process_inputs(self, key: str, snapshot: CameraSnapshot) -> None:
        if self.log_inputs:
            self._write({"t": now_ms(), "key": key, "inputs": snapshot.to_dict()})

    def record_alert(self, key: str, text: str, active: bool) -> None:
        self._write({"t": now_ms(), "key": key, "alert": {"text": text, "active": bool(active)}})

    def close(self) -> None:
        if self._f is not None:
            self._f.close()
            self._f = None

    def __enter__(self) -> "JsonlTelemetrySink":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
