"""Test doubles for the vision cycle."""
from typing import Iterable, List, Tuple

import numpy as np

from common.types import CameraSnapshot, Pose2d, Pose3d, PoseObservation


def make_obs(x=1.0, y=1.0, z=0.0, *, tag_count=2, ambiguity=0.0, distance=2.0, t=0.0, yaw=0.0):
    return PoseObservation(
        timestamp_s=t,
        pose=Pose3d.from_xyz_rpy(x, y, z, yaw=yaw),
        ambiguity=ambiguity,
        tag_count=tag_count,
        average_tag_distance_m=distance,
    )


class ScriptedCameraIO:
    """Returns the given snapshots one per refresh, then disconnected snapshots."""

    def __init__(self, snapshots: Iterable[CameraSnapshot]):
        self._snapshots = list(snapshots)
        self._i = 0
        self._current = CameraSnapshot()
        self.refreshes = 0

    def refresh(self) -> None:
        self.refreshes += 1
        if self._i < len(self._snapshots):
            self._current = self._snapshots[self._i]
            self._i += 1
        else:
            self._current = CameraSnapshot()

    def read(self) -> CameraSnapshot:
        return self._current


class RecordingConsumer:
    """Pose consumer that remembers every call."""

    def __init__(self):
        self.calls: List[Tuple[Pose2d, float, np.ndarray]] = []

    def __call__(self, pose: Pose2d, timestamp_s: float, std_devs: np.ndarray) -> None:
        self.calls.append((pose, timestamp_s, std_devs))
