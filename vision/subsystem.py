from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from cameras.io import CameraIO
from common.logging_setup import get_logger
from common.types import CameraSnapshot, FieldBounds, Pose3d
from field.layout import FieldGeometry
from telemetry.sink import TelemetrySink
from vision.alerts import Alert, ConnectivityMonitor
from vision.config import VisionConfig
from vision.consumer import PoseConsumer
from vision.std_devs import DynamicStdDevs, StdDevEstimator
from vision.validate import rejection_reason


log = get_logger("vision")


@dataclass
class CameraRecord:
    """Per-camera state: the adapter handle and the snapshot read this cycle."""
    io: CameraIO
    inputs: CameraSnapshot = field(default_factory=CameraSnapshot)


@dataclass(slots=True)
class CameraCycleStats:
    camera_index: int
    connected: bool
    tag_poses: int
    observations: int
    accepted: int
    rejected: int


@dataclass(slots=True)
class CycleSummary:
    """Counts for one periodic() call; the pose arrays themselves go to telemetry."""
    cycle: int
    cameras: List[CameraCycleStats]

    @property
    def accepted(self) -> int:
        return sum(c.accepted for c in self.cameras)

    @property
    def rejected(self) -> int:
        return sum(c.rejected for c in self.cameras)

    @property
    def observations(self) -> int:
        return sum(c.observations for c in self.cameras)


class VisionSubsystem:
    """
    Runs the AprilTag observation gate once per control cycle.

    Args:
        consumer: called as consumer(pose2d, timestamp_s, std_devs) for every
            accepted observation, in camera-index then adapter order.
        cameras: camera adapters; list position is the camera index.
        field_layout: tag poses and field size.
        sink: telemetry destination.
        std_devs: measurement std-dev strategy (default DynamicStdDevs()).
        config: rejection thresholds and telemetry namespace.

    periodic() never blocks and never raises for any observation; consumer and
    sink exceptions propagate to the caller.
    """

    def __init__(
        self,
        consumer: PoseConsumer,
        cameras: Sequence[CameraIO],
        field_layout: FieldGeometry,
        sink: TelemetrySink,
        *,
        std_devs: Optional[StdDevEstimator] = None,
        config: Optional[VisionConfig] = None,
    ):
        self._consumer = consumer
        self._cameras: List[CameraRecord] = [CameraRecord(io) for io in cameras]
        self._field = field_layout
        self._sink = sink
        self._std_devs: StdDevEstimator = std_devs if std_devs is not None else DynamicStdDevs()
        self._config = config if config is not None else VisionConfig()
        self._connectivity = ConnectivityMonitor(len(self._cameras))
        self._cycle = 0

    # -------- public API --------

    @property
    def camera_count(self) -> int:
        return len(self._cameras)

    @property
    def connectivity(self) -> ConnectivityMonitor:
        return self._connectivity

    @property
    def alerts(self) -> List[Alert]:
        return self._connectivity.active_alerts()

    def inputs(self, camera_index: int) -> CameraSnapshot:
        """Snapshot read from the camera during the last cycle."""
        return self._cameras[camera_index].inputs

    def get_target_x(self, camera_index: int) -> float:
        """Yaw (rad) to the best target, usable for tag/object tracking."""
        return self._cameras[camera_index].inputs.latest_target.tx

    def get_target_y(self, camera_index: int) -> float:
        """Pitch (rad) to the best target, usable for tag/object tracking."""
        return self._cameras[camera_index].inputs.latest_target.ty

    def periodic(self) -> CycleSummary:
        ns = self._config.namespace
        self._cycle += 1

        for i, cam in enumerate(self._cameras):
            cam.io.refresh()
            cam.inputs = cam.io.read()
            self._sink.process_inputs(f"{ns}/Camera{i}", cam.inputs)

        bounds = FieldBounds(self._field.field_length, self._field.field_width)
        all_tag_poses: List[Pose3d] = []
        all_robot_poses: List[Pose3d] = []
        all_accepted: List[Pose3d] = []
        all_rejected: List[Pose3d] = []
        stats: List[CameraCycleStats] = []

        for i, cam in enumerate(self._cameras):
            inputs = cam.inputs
            self._connectivity.update(i, inputs.connected)
            alert = self._connectivity.alert(i)
            self._sink.record_alert(f"{ns}/Alerts/Camera{i}", alert.text, alert.active)

            tag_poses: List[Pose3d] = []
            for tag_id in inputs.tag_ids:
                tag_pose = self._field.lookup(tag_id)
                if tag_pose is not None:
                    tag_poses.append(tag_pose)

            robot_poses: List[Pose3d] = []
            accepted: List[Pose3d] = []
            rejected: List[Pose3d] = []
            for observation in inputs.pose_observations:
                reason = rejection_reason(observation, bounds, self._config)
                robot_poses.append(observation.pose)
                if reason is not None:
                    rejected.append(observation.pose)
                    log.debug(
                        "Rejected pose observation",
                        extra={"extra": {"camera": i, "reason": reason.value, "tags": observation.tag_count}},
                    )
                    continue

                accepted.append(observation.pose)
                self._consumer(
                    observation.pose.to_pose2d(),
                    observation.timestamp_s,
                    self._std_devs(observation, i),
                )

            prefix = f"{ns}/Camera{i}"
            self._sink.record(f"{prefix}/TagPoses", tag_poses)
            self._sink.record(f"{prefix}/RobotPoses", robot_poses)
            self._sink.record(f"{prefix}/RobotPosesAccepted", accepted)
            self._sink.record(f"{prefix}/RobotPosesRejected", rejected)
            all_tag_poses.extend(tag_poses)
            all_robot_poses.extend(robot_poses)
            all_accepted.extend(accepted)
            all_rejected.extend(rejected)
            stats.append(
                CameraCycleStats(
                    camera_index=i,
                    connected=inputs.connected,
                    tag_poses=len(tag_poses),
                    observations=len(robot_poses),
                    accepted=len(accepted),
                    rejected=len(rejected),
                )
            )

        self._sink.record(f"{ns}/Summary/TagPoses", all_tag_poses)
        self._sink.record(f"{ns}/Summary/RobotPoses", all_robot_poses)
        self._sink.record(f"{ns}/Summary/RobotPosesAccepted", all_accepted)
        self._sink.record(f"{ns}/Summary/RobotPosesRejected", all_rejected)

        return CycleSummary(cycle=self._cycle, cameras=stats)
