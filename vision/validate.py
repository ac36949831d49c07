"""
Observation gate: decides whether a camera pose observation may reach the pose
estimator. Pure functions; every observation gets a definite verdict.
"""
from __future__ import annotations

from typing import Optional

from common.types import FieldBounds, PoseObservation, RejectReason, Verdict
from vision.config import VisionConfig


_DEFAULT_CONFIG = VisionConfig()


def rejection_reason(
    observation: PoseObservation,
    bounds: FieldBounds,
    config: VisionConfig = _DEFAULT_CONFIG,
) -> Optional[RejectReason]:
    """
    Return why `observation` must be rejected, or None to accept it.

    Checks, first failure wins:
      1) no tags at all
      2) single tag with ambiguity above the cutoff (== cutoff passes)
      3) |z| above the allowed error (robot must be on the carpet)
      4) x/y outside [0, length] x [0, width] (edges pass)
      5) average tag distance above the cutoff, only if that cutoff is configured
    """
    if observation.tag_count == 0:
        return RejectReason.NO_TAGS
    if observation.tag_count == 1 and observation.ambiguity > config.max_ambiguity:
        return RejectReason.HIGH_AMBIGUITY

    pose = observation.pose
    if abs(pose.z) > config.max_z_error_m:
        return RejectReason.Z_ERROR
    if not bounds.contains(pose.x, pose.y):
        return RejectReason.OUT_OF_FIELD

    cutoff = config.max_distance_cutoff_m
    if cutoff is not None and observation.average_tag_distance_m > cutoff:
        return RejectReason.TOO_FAR
    return None


def should_reject(
    observation: PoseObservation,
    bounds: FieldBounds,
    config: VisionConfig = _DEFAULT_CONFIG,
) -> bool:
    return rejection_reason(observation, bounds, config) is not None


def validate(
    observation: PoseObservation,
    bounds: FieldBounds,
    config: VisionConfig = _DEFAULT_CONFIG,
) -> Verdict:
    if should_reject(observation, bounds, config):
        return Verdict.REJECT
    return Verdict.ACCEPT
