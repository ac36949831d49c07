"""
Cycle driver: builds cameras, field layout, telemetry sink and consumer from
params.yaml and calls VisionSubsystem.periodic() at a fixed rate.

Examples:
  python -m vision.runner --config config/params.yaml
  python -m vision.runner --cycles 500 --rate 100 --telemetry logs/run1.jsonl
"""
from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import IO, Any, Dict, Optional

from cameras.io import build_cameras
from common.config import load_params
from common.logging_setup import get_logger, setup_logging
from common.utils import LoopPacer, RateTimer
from field.layout import FieldLayout
from telemetry.sink import JsonlTelemetrySink
from vision.config import VisionConfig
from vision.consumer import MeasurementQueue
from vision.std_devs import DynamicStdDevs
from vision.subsystem import CycleSummary, VisionSubsystem


log = get_logger("vision.runner")


def _write_measurements(f: IO[str], queue: MeasurementQueue) -> int:
    rows = queue.drain()
    for m in rows:
        f.write(json.dumps(m.to_dict()) + "\n")
    return len(rows)


def build_subsystem(P: Dict[str, Any], sink, consumer) -> VisionSubsystem:
    layout = FieldLayout.from_json(P["field"]["layout_path"])
    cameras = build_cameras(P.get("cameras") or [], layout)
    if not cameras:
        raise ValueError("params: 'cameras' must list at least one camera")
    return VisionSubsystem(
        consumer,
        cameras,
        layout,
        sink,
        std_devs=DynamicStdDevs.from_params(P),
        config=VisionConfig.from_params(P),
    )


def run(P: Dict[str, Any], *, cycles: Optional[int] = None, rate_hz: Optional[float] = None) -> Dict[str, int]:
    """
    Run the vision loop. Returns totals {cycles, observations, accepted, rejected}.
    cycles=None runs until interrupted.
    """
    tel = P["telemetry"]
    rate = float(rate_hz or P["runner"].get("rate_hz", 50.0))
    progress_every = max(1, int(P["runner"].get("progress_every", 250)))
    measurements_path = Path(tel.get("measurements_path", "logs/measurements.jsonl"))
    measurements_path.parent.mkdir(parents=True, exist_ok=True)

    queue = MeasurementQueue(maxlen=int(tel.get("queue_size", 1024)))
    totals = {"cycles": 0, "observations": 0, "accepted": 0, "rejected": 0}

    with JsonlTelemetrySink(tel["path"], log_inputs=bool(tel.get("log_inputs", True))) as sink, \
            measurements_path.open("a", buffering=1, encoding="utf-8") as measurements:
        vision = build_subsystem(P, sink, queue)
        pacer = LoopPacer(1.0 / rate)
        rt = RateTimer()
        log.info(
            "Vision loop started",
            extra={"extra": {"cameras": vision.camera_count, "rate_hz": rate, "telemetry": tel["path"]}},
        )
        try:
            while cycles is None or totals["cycles"] < cycles:
                summary: CycleSummary = vision.periodic()
                _write_measurements(measurements, queue)

                totals["cycles"] += 1
                totals["observations"] += summary.observations
                totals["accepted"] += summary.accepted
                totals["rejected"] += summary.rejected
                hz = rt.tick()
                if totals["cycles"] % progress_every == 0:
                    log.info(
                        "Vision progress",
                        extra={"extra": {**totals, "hz": round(hz, 1), "alerts": [a.text for a in vision.alerts]}},
                    )
                overrun = pacer.wait()
                if overrun > 0:
                    log.debug("Cycle overran period", extra={"extra": {"overrun_ms": round(overrun * 1e3, 2)}})
        except KeyboardInterrupt:
            log.info("Vision loop interrupted")

    log.info("Vision loop finished", extra={"extra": totals})
    return totals


def main() -> None:
    ap = argparse.ArgumentParser(description="AprilTag vision gate: cycle driver")
    ap.add_argument("--config", default="config/params.yaml")
    ap.add_argument("--cycles", type=int, default=None, help="Stop after N cycles (default: run forever)")
    ap.add_argument("--rate", type=float, default=None, help="Cycle rate Hz (overrides config runner.rate_hz)")
    ap.add_argument("--telemetry", default=None, help="Telemetry JSONL path (overrides config)")
    ap.add_argument("--log-level", default=None, help="Override logging.level")
    args = ap.parse_args()

    P = load_params(args.config)
    setup_logging(args.log_level or P["logging"].get("level", "INFO"), P["logging"].get("file"), force=True)
    if args.telemetry:
        P["telemetry"]["path"] = args.telemetry

    totals = run(P, cycles=args.cycles, rate_hz=args.rate)
    print(
        f"Vision runner finished: {totals['cycles']} cycles, "
        f"{totals['accepted']} accepted / {totals['rejected']} rejected"
    )


if __name__ == "__main__":
    main()
