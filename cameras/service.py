"""
Camera recorder: run simulated cameras on a virtual clock and write one
snapshot JSONL per camera, for later replay through ReplayCameraIO.

Examples:
  # Two cameras, 30 s at 50 Hz, circle trajectory
  python -m cameras.service --cameras 2 --rate 50 --duration 30 --out runtime/snapshots

  # Single noisy camera with dropouts on a figure-8
  python -m cameras.service --pattern figure8 --dropout 0.05 --outliers 0.2 --out runtime/snapshots
"""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Iterator

from cameras.io import TRAJECTORY_PATTERNS, SimCameraIO, write_snapshots_jsonl
from common.logging_setup import get_logger, setup_logging
from common.types import CameraSnapshot
from field.layout import FieldLayout


log = get_logger("cameras.service")


class VirtualClock:
    """Deterministic clock advanced by the recorder, one tick per cycle."""

    def __init__(self, period_s: float):
        self.period_s = period_s
        self.t = 0.0

    def __call__(self) -> float:
        return self.t

    def tick(self) -> None:
        self.t += self.period_s


def _record(cam: SimCameraIO, clock: VirtualClock, cycles: int) -> Iterator[CameraSnapshot]:
    for _ in range(cycles):
        cam.refresh()
        yield cam.read()
        clock.tick()


def main() -> None:
    ap = argparse.ArgumentParser(description="Record simulated camera snapshots to JSONL")
    ap.add_argument("--field", default="config/field_layout.json", help="AprilTag layout JSON")
    ap.add_argument("--cameras", type=int, default=1, help="Number of cameras to record")
    ap.add_argument("--pattern", default="circle", choices=list(TRAJECTORY_PATTERNS))
    ap.add_argument("--rate", type=float, default=50.0, help="Cycle rate (Hz) of the virtual clock")
    ap.add_argument("--duration", type=float, default=30.0, help="Seconds of simulated time")
    ap.add_argument("--range", dest="max_range", type=float, default=5.0, help="Tag visibility radius (m)")
    ap.add_argument("--outliers", type=float, default=0.05, help="Probability of a corrupted solve")
    ap.add_argument("--dropout", type=float, default=0.0, help="Probability of a disconnected cycle")
    ap.add_argument("--seed", type=int, default=1234)
    ap.add_argument("--out", default="runtime/snapshots", help="Output directory (camera<i>.jsonl)")
    args = ap.parse_args()

    setup_logging()
    if args.rate <= 0 or args.duration <= 0:
        raise SystemExit("--rate and --duration must be > 0")

    layout = FieldLayout.from_json(args.field)
    cycles = int(round(args.rate * args.duration))
    out_dir = Path(args.out)

    for i in range(args.cameras):
        clock = VirtualClock(1.0 / args.rate)
        cam = SimCameraIO(
            field_layout=layout,
            camera_index=i,
            pattern=args.pattern,
            max_range_m=args.max_range,
            outlier_prob=args.outliers,
            dropout_prob=args.dropout,
            seed=args.seed + i,
            clock=clock,
        )
        path = out_dir / f"camera{i}.jsonl"
        n = write_snapshots_jsonl(str(path), _record(cam, clock, cycles))
        log.info("Recorded camera", extra={"extra": {"camera": i, "rows": n, "path": str(path)}})

    print(f"Camera recorder finished: {args.cameras} camera(s), {cycles} cycles each -> {out_dir}")


if __name__ == "__main__":
    main()
