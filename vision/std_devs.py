from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Sequence, Tuple

import numpy as np

from common.types import PoseObservation
from vision.config import (
    ANGULAR_STD_DEV_BASELINE,
    CAMERA_STD_DEV_FACTORS,
    LINEAR_STD_DEV_BASELINE,
)


# (observation, camera_index) -> (3,) std-devs [x m, y m, theta rad]
StdDevEstimator = Callable[[PoseObservation, int], np.ndarray]


@dataclass(frozen=True, slots=True)
class DynamicStdDevs:
    """
    Measurement std-devs that grow with distance and shrink with tag count:

        factor  = avg_tag_distance^2 / tag_count
        linear  = linear_baseline  * factor * camera_factor
        angular = angular_baseline * factor * camera_factor

    Cameras beyond the end of `camera_factors` use 1.0. Only accepted
    observations reach this, so tag_count >= 1 in practice; 0 is treated as 1.
    """
    linear_baseline: float = LINEAR_STD_DEV_BASELINE
    angular_baseline: float = ANGULAR_STD_DEV_BASELINE
    camera_factors: Tuple[float, ...] = CAMERA_STD_DEV_FACTORS

    def __post_init__(self) -> None:
        if self.linear_baseline < 0 or self.angular_baseline < 0:
            raise ValueError("std-dev baselines must be >= 0")
        factors = tuple(float(f) for f in self.camera_factors)
        if any(f < 0 for f in factors):
            raise ValueError("camera_std_dev_factors must be >= 0")
        object.__setattr__(self, "camera_factors", factors)

    @classmethod
    def from_params(cls, P: Dict[str, Any]) -> "DynamicStdDevs":
        v = P.get("vision", {}) or {}
        factors: Sequence[float] = v.get("camera_std_dev_factors", CAMERA_STD_DEV_FACTORS) or ()
        return cls(
            linear_baseline=float(v.get("linear_std_dev_baseline", LINEAR_STD_DEV_BASELINE)),
            angular_baseline=float(v.get("angular_std_dev_baseline", ANGULAR_STD_DEV_BASELINE)),
            camera_factors=tuple(factors),
        )

    def camera_factor(self, camera_index: int) -> float:
        if 0 <= camera_index < len(self.camera_factors):
            return self.camera_factors[camera_index]
        return 1.0

    def __call__(self, observation: PoseObservation, camera_index: int) -> np.ndarray:
        factor = observation.average_tag_distance_m ** 2 / max(observation.tag_count, 1)
        factor *= self.camera_factor(camera_index)
        linear = self.linear_baseline * factor
        angular = self.angular_baseline * factor
        return np.array([linear, linear, angular], dtype=float)
