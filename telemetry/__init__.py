"""
Telemetry — diagnostic pose arrays for offline inspection

- sink.py: TelemetrySink protocol; MemoryTelemetrySink, JsonlTelemetrySink
- reader.py: tail/aggregate telemetry JSONL (used by the server, dashboard, scripts)
- server.py: FastAPI status API (/health, /alerts, /summary, /cameras/{index})

Keys:
    <namespace>/Camera<i>/{TagPoses,RobotPoses,RobotPosesAccepted,RobotPosesRejected}
    <namespace>/Summary/{...same categories...}
    <namespace>/Alerts/Camera<i>
"""
from .sink import JsonlTelemetrySink, MemoryTelemetrySink, TelemetrySink

__all__ = ["TelemetrySink", "MemoryTelemetrySink", "JsonlTelemetrySink"]
