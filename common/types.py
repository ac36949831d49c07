from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple, Any, Dict, Mapping, Sequence
import math
import numpy as np

from common.geometry import Quaternion, quat_from_rpy, quat_normalize, yaw_from_quat


POSE_CATEGORIES = ("TagPoses", "RobotPoses", "RobotPosesAccepted", "RobotPosesRejected")


def _as_quat(q: Sequence[float]) -> Quaternion:
    if len(q) != 4:
        raise ValueError("rotation must be a 4-element quaternion (w, x, y, z)")
    return (float(q[0]), float(q[1]), float(q[2]), float(q[3]))


@dataclass(frozen=True, slots=True)
class Pose2d:
    """Planar robot pose: x, y in meters (field frame), theta in radians."""
    x: float
    y: float
    theta: float = 0.0

    def to_list(self) -> list:
        return [self.x, self.y, self.theta]


@dataclass(frozen=True, slots=True)
class Pose3d:
    """
    Field-frame 3D pose.

    Attributes:
        x, y, z: translation (meters); z=0 is the carpet.
        rotation: unit quaternion (w, x, y, z).
    """
    x: float
    y: float
    z: float = 0.0
    rotation: Quaternion = (1.0, 0.0, 0.0, 0.0)

    def __post_init__(self) -> None:
        object.__setattr__(self, "x", float(self.x))
        object.__setattr__(self, "y", float(self.y))
        object.__setattr__(self, "z", float(self.z))
        q = _as_quat(self.rotation)
        object.__setattr__(self, "rotation", quat_normalize(q))  # raises on zero / non-finite

    @classmethod
    def from_xyz_rpy(cls, x: float, y: float, z: float, roll: float = 0.0, pitch: float = 0.0, yaw: float = 0.0) -> "Pose3d":
        return cls(x, y, z, quat_from_rpy(roll, pitch, yaw))

    @property
    def yaw(self) -> float:
        return yaw_from_quat(self.rotation)

    def to_pose2d(self) -> Pose2d:
        """Project onto the floor: drop z, keep heading about field Z."""
        return Pose2d(self.x, self.y, self.yaw)

    def to_list(self) -> list:
        """JSON form: [x, y, z, qw, qx, qy, qz]."""
        return [self.x, self.y, self.z, *self.rotation]

    @classmethod
    def from_list(cls, v: Sequence[float]) -> "Pose3d":
        if len(v) == 3:
            return cls(v[0], v[1], v[2])
        if len(v) != 7:
            raise ValueError("pose list must be [x,y,z] or [x,y,z,qw,qx,qy,qz]")
        return cls(v[0], v[1], v[2], (v[3], v[4], v[5], v[6]))


@dataclass(frozen=True, slots=True)
class PoseObservation:
    """
    One candidate robot pose produced by a camera at one instant.

    Attributes:
        timestamp_s: capture time (seconds, host timebase).
        pose: field-frame robot pose solved from the visible tags.
        ambiguity: pose ambiguity in [0..1]; only meaningful for single-tag solves.
        tag_count: number of tags used for the solve.
        average_tag_distance_m: mean camera-to-tag distance (meters).
    """
    timestamp_s: float
    pose: Pose3d
    ambiguity: float = 0.0
    tag_count: int = 0
    average_tag_distance_m: float = 0.0

    def __post_init__(self) -> None:
        if not isinstance(self.pose, Pose3d):
            raise TypeError("pose must be a Pose3d")
        if int(self.tag_count) < 0:
            raise ValueError("tag_count must be >= 0")
        object.__setattr__(self, "tag_count", int(self.tag_count))
        object.__setattr__(self, "timestamp_s", float(self.timestamp_s))
        object.__setattr__(self, "ambiguity", float(self.ambiguity))
        object.__setattr__(self, "average_tag_distance_m", float(self.average_tag_distance_m))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp_s": self.timestamp_s,
            "pose": self.pose.to_list(),
            "ambiguity": self.ambiguity,
            "tag_count": self.tag_count,
            "average_tag_distance_m": self.average_tag_distance_m,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PoseObservation":
        if not isinstance(d, Mapping):
            raise ValueError("pose observation must be a JSON object")
        return cls(
            timestamp_s=float(d["timestamp_s"]),
            pose=Pose3d.from_list(d["pose"]),
            ambiguity=float(d.get("ambiguity", 0.0)),
            tag_count=int(d.get("tag_count", 0)),
            average_tag_distance_m=float(d.get("average_tag_distance_m", 0.0)),
        )


@dataclass(frozen=True, slots=True)
class TargetObservation:
    """Yaw (tx) and pitch (ty) to the best target, radians."""
    tx: float = 0.0
    ty: float = 0.0


@dataclass(frozen=True, slots=True)
class CameraSnapshot:
    """
    Everything one camera reported for one cycle.

    The default instance is a disconnected camera with nothing in view; adapters
    return it when they have no fresh data.
    """
    connected: bool = False
    tag_ids: Tuple[int, ...] = ()
    pose_observations: Tuple[PoseObservation, ...] = ()
    latest_target: TargetObservation = field(default_factory=TargetObservation)

    def __post_init__(self) -> None:
        object.__setattr__(self, "connected", bool(self.connected))
        object.__setattr__(self, "tag_ids", tuple(int(t) for t in self.tag_ids))
        object.__setattr__(self, "pose_observations", tuple(self.pose_observations))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "connected": self.connected,
            "tag_ids": list(self.tag_ids),
            "pose_observations": [o.to_dict() for o in self.pose_observations],
            "latest_target": {"tx": self.latest_target.tx, "ty": self.latest_target.ty},
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CameraSnapshot":
        """Parse a to_dict() row; anything that is not that shape is a ValueError."""
        if not isinstance(d, Mapping):
            raise ValueError("camera snapshot must be a JSON object")
        tgt = d.get("latest_target") or {}
        if not isinstance(tgt, Mapping):
            raise ValueError("latest_target must be a JSON object")
        return cls(
            connected=bool(d.get("connected", False)),
            tag_ids=tuple(int(t) for t in d.get("tag_ids", ())),
            pose_observations=tuple(PoseObservation.from_dict(o) for o in d.get("pose_observations", ())),
            latest_target=TargetObservation(float(tgt.get("tx", 0.0)), float(tgt.get("ty", 0.0))),
        )


@dataclass(frozen=True, slots=True)
class FieldBounds:
    """Legal robot footprint: [0, length] x [0, width], edges included."""
    length_m: float
    width_m: float

    def __post_init__(self) -> None:
        if not (self.length_m > 0 and self.width_m > 0):
            raise ValueError("field length and width must be > 0")

    def contains(self, x: float, y: float) -> bool:
        return 0.0 <= x <= self.length_m and 0.0 <= y <= self.width_m


@dataclass(slots=True)
class VisionMeasurement:
    """
    A measurement handed to the pose consumer.

    Attributes:
        pose: robot pose projected to the floor.
        timestamp_s: capture time of the originating observation.
        std_devs: (3,) standard deviations for x (m), y (m), theta (rad).
    """
    pose: Pose2d
    timestamp_s: float
    std_devs: np.ndarray = field(repr=False)

    def __post_init__(self) -> None:
        self.std_devs = np.asarray(self.std_devs, dtype=float).reshape(3)
        if not np.all(self.std_devs >= 0.0):
            raise ValueError("std_devs must be >= 0")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp_s": self.timestamp_s,
            "pose": self.pose.to_list(),
            # inf is legal (ignore axis) but not valid JSON
            "std_devs": [v if math.isfinite(v) else None for v in self.std_devs.tolist()],
        }


class RejectReason(Enum):
    """Why an observation was routed to the rejected bucket."""
    NO_TAGS = "no_tags"
    HIGH_AMBIGUITY = "high_ambiguity"
    Z_ERROR = "z_error"
    OUT_OF_FIELD = "out_of_field"
    TOO_FAR = "too_far"


class Verdict(Enum):
    ACCEPT = "accept"
    REJECT = "reject"


def poses_to_lists(poses: Sequence[Pose3d]) -> list:
    return [p.to_list() for p in poses]

