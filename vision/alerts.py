from __future__ import annotations

from enum import Enum
from typing import List

from common.logging_setup import get_logger


log = get_logger("vision.alerts")


class AlertType(Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class Alert:
    """
    A persistent operator-facing condition (e.g. "camera 1 is disconnected").

    `set()` is called every cycle with the current condition. Only edges are
    logged: WARNING (or ERROR/INFO per type) when the alert becomes active, INFO
    when it clears. No debouncing.
    """

    def __init__(self, text: str, alert_type: AlertType = AlertType.WARNING, active: bool = False):
        self.text = text
        self.alert_type = alert_type
        self._active = bool(active)

    @property
    def active(self) -> bool:
        return self._active

    def set(self, active: bool) -> None:
        active = bool(active)
        if active and not self._active:
            if self.alert_type is AlertType.ERROR:
                log.error(self.text)
            elif self.alert_type is AlertType.WARNING:
                log.warning(self.text)
            else:
                log.info(self.text)
        elif self._active and not active:
            log.info("Alert cleared", extra={"extra": {"alert": self.text}})
        self._active = active

    def __repr__(self) -> str:
        return f"Alert({self.text!r}, {self.alert_type.value}, active={self._active})"


class ConnectivityMonitor:
    """
    One disconnected-alert per camera, keyed by camera index.

    Cameras count as disconnected until their first snapshot has been seen,
    so every alert starts active (silently; the first cycle logs only if the
    camera comes up, as a clear).
    """

    def __init__(self, camera_count: int):
        if camera_count < 0:
            raise ValueError("camera_count must be >= 0")
        self._alerts: List[Alert] = [
            Alert(f"Vision camera {i} is disconnected.", AlertType.WARNING, active=True)
            for i in range(camera_count)
        ]

    def __len__(self) -> int:
        return len(self._alerts)

    def update(self, camera_index: int, connected: bool) -> None:
        self._alerts[camera_index].set(not connected)

    def is_connected(self, camera_index: int) -> bool:
        return not self._alerts[camera_index].active

    def alert(self, camera_index: int) -> Alert:
        return self._alerts[camera_index]

    def active_alerts(self) -> List[Alert]:
        return [a for a in self._alerts if a.active]
