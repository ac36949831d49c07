from __future__ import annotations

import json
import math
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Protocol, Tuple

import numpy as np

from common.geometry import bearing_to, distance_m
from common.logging_setup import get_logger
from common.types import CameraSnapshot, Pose3d, PoseObservation, TargetObservation
from field.layout import FieldLayout


log = get_logger("cameras")

TRAJECTORY_PATTERNS = ("circle", "figure8", "hold")


class CameraIO(Protocol):
    """
    One physical (or simulated) camera.

    refresh() pulls whatever the camera produced since the last cycle; read()
    returns it. Neither may block: an adapter without fresh data reports a
    disconnected snapshot instead.
    """

    def refresh(self) -> None: ...

    def read(self) -> CameraSnapshot: ...


# ---------------------------
# Replay
# ---------------------------

class ReplayCameraIO:
    """
    Replay snapshots from a JSONL file, one CameraSnapshot.to_dict() row per cycle.

    Args:
        path: JSONL file (see cameras/service.py to record one)
        loop: restart at EOF; otherwise report disconnected once exhausted

    Rows that fail to parse are replayed as a disconnected snapshot.
    """

    def __init__(self, path: str, loop: bool = False):
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Snapshot JSONL not found: {path}")
        self.path = p
        self.loop = loop
        self._rows: List[str] = [ln for ln in p.read_text().splitlines() if ln.strip()]
        self._pos = 0
        self._current = CameraSnapshot()
        self._warned_eof = False

    def __len__(self) -> int:
        return len(self._rows)

    def refresh(self) -> None:
        if self._pos >= len(self._rows):
            if self.loop and self._rows:
                self._pos = 0
            else:
                if not self._warned_eof:
                    log.warning("Replay exhausted; reporting disconnected", extra={"extra": {"path": str(self.path)}})
                    self._warned_eof = True
                self._current = CameraSnapshot()
                return

        line = self._rows[self._pos]
        self._pos += 1
        try:
            self._current = CameraSnapshot.from_dict(json.loads(line))
        except (ValueError, KeyError, TypeError) as e:
            log.warning(
                "Bad snapshot row; reporting disconnected",
                extra={"extra": {"path": str(self.path), "row": self._pos, "error": str(e)}},
            )
            self._current = CameraSnapshot()

    def read(self) -> CameraSnapshot:
        return self._current


def write_snapshots_jsonl(path: str, snapshots: Iterable[CameraSnapshot], max_rows: int = 0) -> int:
    """
    Write snapshots as JSONL for ReplayCameraIO. If max_rows > 0, stops after that
    many rows. Returns the number of rows written.
    """
    n = 0
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open(p, "w") as f:
        for s in snapshots:
            f.write(json.dumps(s.to_dict()) + "\n")
            n += 1
            if max_rows > 0 and n >= max_rows:
                break
    return n


# ---------------------------
# Simulation
# ---------------------------

def robot_pose_at(t: float, field_length: float, field_width: float, pattern: str = "circle") -> Pose3d:
    """
    Ground-truth robot pose for the synthetic cameras at time t (seconds).

    circle: 0.2 rad/s around field center; figure8: Lissajous 1:2; hold: parked at center.
    Heading follows the direction of travel.
    """
    cx, cy = field_length / 2.0, field_width / 2.0
    r = 0.3 * min(field_length, field_width)
    w = 0.2
    if pattern == "circle":
        a = w * t
        x, y = cx + r * math.cos(a), cy + r * math.sin(a)
        yaw = a + math.pi / 2.0
    elif pattern == "figure8":
        a = w * t
        x = cx + 1.5 * r * math.sin(a)
        y = cy + r * math.sin(2.0 * a) / 2.0
        yaw = math.atan2(r * math.cos(2.0 * a), 1.5 * r * math.cos(a))
    elif pattern == "hold":
        x, y, yaw = cx, cy, 0.0
    else:
        raise ValueError(f"Unknown trajectory pattern: {pattern} (expected one of {TRAJECTORY_PATTERNS})")
    return Pose3d.from_xyz_rpy(x, y, 0.0, yaw=yaw)


@dataclass
class SimCameraIO:
    """
    Synthetic AprilTag camera that follows a ground-truth trajectory.

    Each refresh it "sees" every tag within max_range_m of the camera and emits
    one multi-tag pose observation with Gaussian noise. Single-tag solves get a
    random ambiguity; a fraction of solves are corrupted (large z or pushed off
    the field) so the gate has something to reject.

    Args:
        field_layout: tag poses / field size
        camera_index: used for logging only
        pattern: trajectory (circle | figure8 | hold)
        mount_height_m: camera height above the carpet
        max_range_m: tag visibility radius
        xy_noise_m, z_noise_m, yaw_noise_rad: solve noise std-devs
        outlier_prob: probability that a solve is corrupted
        dropout_prob: probability of a disconnected cycle
        latency_s: capture-to-read delay applied to timestamps
        seed: numpy RNG seed (deterministic runs)
        clock: time source in seconds (inject a fake clock for tests/recording)
    """
    field_layout: FieldLayout
    camera_index: int = 0
    pattern: str = "circle"
    mount_height_m: float = 0.5
    max_range_m: float = 5.0
    xy_noise_m: float = 0.03
    z_noise_m: float = 0.05
    yaw_noise_rad: float = 0.02
    outlier_prob: float = 0.05
    dropout_prob: float = 0.0
    latency_s: float = 0.02
    seed: int = 1234
    clock: Callable[[], float] = time.monotonic
    _rng: np.random.Generator = field(init=False, repr=False)
    _t0: float = field(init=False, repr=False)
    _current: CameraSnapshot = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.pattern not in TRAJECTORY_PATTERNS:
            raise ValueError(f"Unknown trajectory pattern: {self.pattern}")
        if not (0.0 <= self.outlier_prob <= 1.0 and 0.0 <= self.dropout_prob <= 1.0):
            raise ValueError("outlier_prob and dropout_prob must be in [0, 1]")
        self._rng = np.random.default_rng(self.seed)
        self._t0 = self.clock()
        self._current = CameraSnapshot()

    def _visible_tags(self, truth: Pose3d) -> List[Tuple[int, float, Pose3d]]:
        cam_xyz = (truth.x, truth.y, self.mount_height_m)
        seen = []
        for tag_id in self.field_layout.tag_ids:
            tag_pose = self.field_layout.lookup(tag_id)
            if tag_pose is None:
                continue
            d = distance_m(cam_xyz, (tag_pose.x, tag_pose.y, tag_pose.z))
            if d <= self.max_range_m:
                seen.append((tag_id, d, tag_pose))
        return seen

    def refresh(self) -> None:
        now = self.clock()
        if self._rng.random() < self.dropout_prob:
            self._current = CameraSnapshot(connected=False)
            return

        truth = robot_pose_at(now - self._t0, self.field_layout.field_length, self.field_layout.field_width, self.pattern)
        seen = self._visible_tags(truth)
        if not seen:
            self._current = CameraSnapshot(connected=True)
            return

        tag_count = len(seen)
        avg_dist = float(np.mean([d for _, d, _ in seen]))
        ambiguity = float(self._rng.uniform(0.0, 0.6)) if tag_count == 1 else 0.0

        noise_scale = max(1.0, avg_dist) / math.sqrt(tag_count)
        x = truth.x + self._rng.normal(0.0, self.xy_noise_m * noise_scale)
        y = truth.y + self._rng.normal(0.0, self.xy_noise_m * noise_scale)
        z = self._rng.normal(0.0, self.z_noise_m)
        yaw = truth.yaw + self._rng.normal(0.0, self.yaw_noise_rad * noise_scale)
        if self._rng.random() < self.outlier_prob:
            # bad solve: either floating robot or mirrored off the field
            if self._rng.random() < 0.5:
                z += float(self._rng.uniform(1.0, 3.0))
            else:
                x = -x
        obs = PoseObservation(
            timestamp_s=now - self.latency_s,
            pose=Pose3d.from_xyz_rpy(x, y, z, yaw=yaw),
            ambiguity=ambiguity,
            tag_count=tag_count,
            average_tag_distance_m=avg_dist,
        )

        _, _, best = min(seen, key=lambda s: s[1])
        tx, ty = bearing_to((truth.x, truth.y, self.mount_height_m), truth.yaw, (best.x, best.y, best.z))
        self._current = CameraSnapshot(
            connected=True,
            tag_ids=tuple(tag_id for tag_id, _, _ in seen),
            pose_observations=(obs,),
            latest_target=TargetObservation(tx, ty),
        )

    def read(self) -> CameraSnapshot:
        return self._current


def build_cameras(camera_cfgs: Iterable[dict], field_layout: FieldLayout, clock: Optional[Callable[[], float]] = None) -> List[CameraIO]:
    """
    Instantiate adapters from the `cameras:` list in params.yaml. List order is
    the camera index.
      {type: sim, pattern, max_range_m, dropout_prob, outlier_prob, seed, ...}
      {type: replay, path, loop}
    """
    cams: List[CameraIO] = []
    for i, c in enumerate(camera_cfgs):
        c = dict(c)
        kind = c.pop("type", "sim")
        if kind == "replay":
            cams.append(ReplayCameraIO(str(c["path"]), loop=bool(c.get("loop", False))))
        elif kind == "sim":
            if clock is not None:
                c["clock"] = clock
            c.setdefault("seed", 1234 + i)
            cams.append(SimCameraIO(field_layout=field_layout, camera_index=i, **c))
        else:
            raise ValueError(f"cameras[{i}]: unknown type {kind!r} (expected 'sim' or 'replay')")
    return cams
