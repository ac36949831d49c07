from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Final, Optional, Tuple


# Basic filtering thresholds
MAX_AMBIGUITY_CUTOFF: Final[float] = 0.3
MAX_Z_ERROR: Final[float] = 0.75  # m

# Average tag distance cutoff (m). Kept for tuning, disabled by default.
MAX_DISTANCE_CUTOFF: Final[Optional[float]] = None

# Standard deviation baselines, for 1-meter distance and 1 tag
# (adjusted automatically based on distance and # of tags)
LINEAR_STD_DEV_BASELINE: Final[float] = 0.02  # m
ANGULAR_STD_DEV_BASELINE: Final[float] = 0.06  # rad

# Standard deviation multipliers for each camera
# (adjust to trust some cameras more than others)
CAMERA_STD_DEV_FACTORS: Final[Tuple[float, ...]] = (1.0, 1.0)

NAMESPACE: Final[str] = "AprilTagVision"


def _opt_float(v: Any) -> Optional[float]:
    return None if v is None else float(v)


@dataclass(frozen=True, slots=True)
class VisionConfig:
    """
    Rejection thresholds and telemetry namespace.

    Attributes:
        max_ambiguity: single-tag observations above this are rejected.
        max_z_error_m: |z| above this is rejected.
        max_distance_cutoff_m: None disables the average-tag-distance check.
        namespace: telemetry key prefix.
    """
    max_ambiguity: float = MAX_AMBIGUITY_CUTOFF
    max_z_error_m: float = MAX_Z_ERROR
    max_distance_cutoff_m: Optional[float] = MAX_DISTANCE_CUTOFF
    namespace: str = NAMESPACE

    def __post_init__(self) -> None:
        if not (0.0 <= self.max_ambiguity <= 1.0):
            raise ValueError("max_ambiguity must be in [0, 1]")
        if not (self.max_z_error_m >= 0.0):
            raise ValueError("max_z_error_m must be >= 0")
        if self.max_distance_cutoff_m is not None and self.max_distance_cutoff_m <= 0.0:
            raise ValueError("max_distance_cutoff_m must be > 0 (or None to disable)")
        if not self.namespace:
            raise ValueError("namespace must be non-empty")

    @classmethod
    def from_params(cls, P: Dict[str, Any]) -> "VisionConfig":
        v = P.get("vision", {}) or {}
        return cls(
            max_ambiguity=float(v.get("max_ambiguity", MAX_AMBIGUITY_CUTOFF)),
            max_z_error_m=float(v.get("max_z_error_m", MAX_Z_ERROR)),
            max_distance_cutoff_m=_opt_float(v.get("max_distance_cutoff_m", MAX_DISTANCE_CUTOFF)),
            namespace=str(v.get("namespace", NAMESPACE)),
        )
