from __future__ import annotations

from typing import Sequence, Tuple
import math
import numpy as np


Quaternion = Tuple[float, float, float, float]  # (w, x, y, z)


# -------------------------
# Angles
# -------------------------
def wrap_angle(a: float) -> float:
    """Wrap an angle (rad) into [-pi, pi)."""
    return (a + math.pi) % (2.0 * math.pi) - math.pi


# -------------------------
# Quaternion helpers
# -------------------------
def quat_normalize(q: Sequence[float]) -> Quaternion:
    """Return q / |q|. Raises ValueError for a zero quaternion."""
    w, x, y, z = (float(v) for v in q)
    n = math.sqrt(w * w + x * x + y * y + z * z)
    if n <= 0.0 or not math.isfinite(n):
        raise ValueError("quaternion must have a finite, non-zero norm")
    return (w / n, x / n, y / n, z / n)


def quat_from_rpy(roll: float, pitch: float, yaw: float) -> Quaternion:
    """
    Intrinsic Z-Y-X (yaw, pitch, roll) Euler angles to a unit quaternion (w, x, y, z).
    Same convention as WPILib's Rotation3d.
    """
    cr, sr = math.cos(roll / 2.0), math.sin(roll / 2.0)
    cp, sp = math.cos(pitch / 2.0), math.sin(pitch / 2.0)
    cy, sy = math.cos(yaw / 2.0), math.sin(yaw / 2.0)
    w = cr * cp * cy + sr * sp * sy
    x = sr * cp * cy - cr * sp * sy
    y = cr * sp * cy + sr * cp * sy
    z = cr * cp * sy - sr * sp * cy
    return (w, x, y, z)


def quat_to_rpy(q: Sequence[float]) -> Tuple[float, float, float]:
    """Unit quaternion (w, x, y, z) to (roll, pitch, yaw) radians."""
    w, x, y, z = quat_normalize(q)
    roll = math.atan2(2.0 * (w * x + y * z), 1.0 - 2.0 * (x * x + y * y))
    # clamp for numerical safety at gimbal lock
    s = max(-1.0, min(1.0, 2.0 * (w * y - z * x)))
    pitch = math.asin(s)
    yaw = math.atan2(2.0 * (w * z + x * y), 1.0 - 2.0 * (y * y + z * z))
    return (roll, pitch, yaw)


def yaw_from_quat(q: Sequence[float]) -> float:
    """Heading about the field Z axis (rad)."""
    return quat_to_rpy(q)[2]


# -------------------------
# Distances / bearings
# -------------------------
def distance_m(a: Sequence[float], b: Sequence[float]) -> float:
    """Euclidean distance between two 3D points (meters)."""
    d = np.asarray(a, dtype=float)[:3] - np.asarray(b, dtype=float)[:3]
    return float(np.linalg.norm(d))


def bearing_to(
    origin_xyz: Sequence[float],
    heading_rad: float,
    target_xyz: Sequence[float],
) -> Tuple[float, float]:
    """
    Yaw/pitch (rad) from an origin with the given heading to a target point.
    Yaw is counter-clockwise positive (field convention), wrapped to [-pi, pi).
    """
    dx = float(target_xyz[0]) - float(origin_xyz[0])
    dy = float(target_xyz[1]) - float(origin_xyz[1])
    dz = float(target_xyz[2]) - float(origin_xyz[2])
    yaw = wrap_angle(math.atan2(dy, dx) - heading_rad)
    pitch = math.atan2(dz, math.hypot(dx, dy))
    return yaw, pitch
