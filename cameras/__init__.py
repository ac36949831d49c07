"""
Cameras — camera input adapters (Replay/Sim)

Provides:
- CameraIO protocol: refresh() then read() -> CameraSnapshot, once per cycle
- ReplayCameraIO: replay recorded snapshots from JSONL
- SimCameraIO: synthetic AprilTag camera following a ground-truth trajectory
- A small CLI in service.py to record simulated snapshots for replay.

Usage examples:
    from cameras.io import ReplayCameraIO, SimCameraIO
"""
from .io import CameraIO, ReplayCameraIO, SimCameraIO, build_cameras

__all__ = ["CameraIO", "ReplayCameraIO", "SimCameraIO", "build_cameras"]
