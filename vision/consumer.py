"""
Reference pose consumer: keeps accepted measurements in a bounded queue so the
vision cycle never waits on the estimator. The estimator (or the runner) drains it.
"""
from __future__ import annotations

from collections import deque
from typing import Callable, Deque, List

import numpy as np

from common.types import Pose2d, VisionMeasurement


# (robot pose on the floor, capture timestamp s, (3,) std-devs) -> None
PoseConsumer = Callable[[Pose2d, float, np.ndarray], None]


class MeasurementQueue:
    """
    Non-blocking measurement buffer; oldest entries fall off when full.

    Usage:
        q = MeasurementQueue(maxlen=256)
        vision = VisionSubsystem(q, cameras, layout, sink)
        vision.periodic()
        for m in q.drain():
            estimator.add_vision_measurement(m.pose, m.timestamp_s, m.std_devs)
    """

    def __init__(self, maxlen: int = 256):
        if maxlen <= 0:
            raise ValueError("maxlen must be > 0")
        self._q: Deque[VisionMeasurement] = deque(maxlen=maxlen)
        self.total = 0

    def __call__(self, pose: Pose2d, timestamp_s: float, std_devs: np.ndarray) -> None:
        self._q.append(VisionMeasurement(pose=pose, timestamp_s=float(timestamp_s), std_devs=std_devs))
        self.total += 1

    def __len__(self) -> int:
        return len(self._q)

    def drain(self) -> List[VisionMeasurement]:
        out = list(self._q)
        self._q.clear()
        return out
