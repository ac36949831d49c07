"""
Vision — AprilTag observation gate

Per control cycle, for every registered camera (in index order):
- refresh the camera adapter and log its raw inputs
- raise/clear the "camera disconnected" alert
- resolve the visible tag poses from the field layout
- accept or reject every pose observation (tag count, ambiguity, height, field bounds)
- forward accepted poses with dynamic std-devs to the pose consumer
- record per-camera and summary pose arrays to telemetry

Entry point:
    python -m vision.runner --config config/params.yaml
"""
from .config import VisionConfig
from .validate import rejection_reason, should_reject, validate
from .std_devs import DynamicStdDevs
from .alerts import Alert, AlertType, ConnectivityMonitor
from .consumer import MeasurementQueue
from .subsystem import CameraCycleStats, CycleSummary, VisionSubsystem

__all__ = [
    "VisionConfig",
    "rejection_reason",
    "should_reject",
    "validate",
    "DynamicStdDevs",
    "Alert",
    "AlertType",
    "ConnectivityMonitor",
    "MeasurementQueue",
    "CameraCycleStats",
    "CycleSummary",
    "VisionSubsystem",
]
