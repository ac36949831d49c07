"""
Common — shared types, pose math, config and logging

- types.py: Pose3d/Pose2d, PoseObservation, CameraSnapshot, FieldBounds, VisionMeasurement
- geometry.py: quaternion / Euler helpers, bearings
- config.py: params.yaml loading with defaults
- logging_setup.py: JSON logging (LOG_LEVEL env)
"""
