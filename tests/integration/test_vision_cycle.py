"""
Integration tests for the vision cycle (vision.subsystem)

Scripted cameras feed VisionSubsystem.periodic(); we check what reaches the
consumer and what lands in telemetry.
"""

import logging
import os
import sys

import numpy as np
import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from cameras.io import ReplayCameraIO
from common.types import CameraSnapshot, Pose2d, TargetObservation
from telemetry.sink import MemoryTelemetrySink
from vision.config import VisionConfig
from vision.consumer import MeasurementQueue
from vision.std_devs import DynamicStdDevs
from vision.subsystem import VisionSubsystem
from tests.helpers import RecordingConsumer, ScriptedCameraIO, make_obs


NS = "AprilTagVision"
CFG = VisionConfig(max_ambiguity=0.2)


class OrderedSink(MemoryTelemetrySink):
    """Memory sink that also remembers the call order."""

    def __init__(self):
        super().__init__()
        self.keys = []

    def record(self, key, poses):
        super().record(key, poses)
        self.keys.append(key)

    def process_inputs(self, key, snapshot):
        super().process_inputs(key, snapshot)
        self.keys.append(key)

    def record_alert(self, key, text, active):
        super().record_alert(key, text, active)
        self.keys.append(key)


def _snap(*observations, connected=True, tag_ids=(3, 4), target=TargetObservation()):
    return CameraSnapshot(connected=connected, tag_ids=tag_ids, pose_observations=observations, latest_target=target)


def _vision(layout, snapshots_per_camera, **kwargs):
    cams = [ScriptedCameraIO(s) for s in snapshots_per_camera]
    consumer = kwargs.pop("consumer", None)
    if consumer is None:
        consumer = RecordingConsumer()
    sink = kwargs.pop("sink", None)
    if sink is None:
        sink = MemoryTelemetrySink()
    kwargs.setdefault("config", CFG)
    return VisionSubsystem(consumer, cams, layout, sink, **kwargs), cams, consumer, sink


class TestScenarios:
    """End-to-end gate behavior for single cycles"""

    def test_multi_tag_accepted_despite_ambiguity(self, layout):
        obs = make_obs(1.0, 1.0, 0.0, tag_count=2, ambiguity=0.9, t=4.2)
        vision, _, consumer, sink = _vision(layout, [[_snap(obs)]])
        summary = vision.periodic()

        assert len(consumer.calls) == 1
        pose, ts, sd = consumer.calls[0]
        assert pose == Pose2d(1.0, 1.0, 0.0)
        assert ts == pytest.approx(4.2)
        assert sd.shape == (3,)
        assert summary.accepted == 1 and summary.rejected == 0
        assert sink.poses[f"{NS}/Camera0/RobotPosesAccepted"] == [obs.pose]
        assert sink.poses[f"{NS}/Camera0/RobotPosesRejected"] == []

    def test_single_tag_high_ambiguity_only_in_rejected(self, layout):
        obs = make_obs(4.0, 4.0, tag_count=1, ambiguity=0.3)
        vision, _, consumer, sink = _vision(layout, [[_snap(obs)]])
        vision.periodic()

        assert consumer.calls == []
        assert sink.poses[f"{NS}/Camera0/RobotPosesRejected"] == [obs.pose]
        assert sink.poses[f"{NS}/Camera0/RobotPosesAccepted"] == []
        assert sink.poses[f"{NS}/Camera0/RobotPoses"] == [obs.pose]

    @pytest.mark.parametrize("tag_count,ambiguity", [(1, 0.0), (2, 0.0), (5, 0.9)])
    def test_negative_x_rejected(self, layout, tag_count, ambiguity):
        obs = make_obs(-0.1, 4.0, tag_count=tag_count, ambiguity=ambiguity)
        vision, _, consumer, sink = _vision(layout, [[_snap(obs)]])
        summary = vision.periodic()
        assert consumer.calls == []
        assert summary.rejected == 1

    def test_disconnected_snapshot_still_processed(self, layout, caplog):
        """The warning is raised but stale observations are still gated and forwarded"""
        caplog.set_level(logging.INFO, logger="vision.alerts")
        obs = make_obs(4.0, 4.0)
        vision, _, consumer, sink = _vision(layout, [[_snap(obs), _snap(obs, connected=False)]])

        vision.periodic()
        assert sink.alerts[f"{NS}/Alerts/Camera0"]["active"] is False
        vision.periodic()

        assert sink.alerts[f"{NS}/Alerts/Camera0"] == {"text": "Vision camera 0 is disconnected.", "active": True}
        assert len(consumer.calls) == 2
        assert "Vision camera 0 is disconnected." in [a.text for a in vision.alerts]
        warnings = [r for r in caplog.records if r.name == "vision.alerts" and r.levelno == logging.WARNING]
        assert [r.getMessage() for r in warnings] == ["Vision camera 0 is disconnected."]

    def test_two_cameras_summary(self, layout):
        good = make_obs(4.0, 4.0)
        bad = make_obs(4.0, 4.0, 2.0)
        vision, _, consumer, sink = _vision(layout, [[_snap(good, bad)], [_snap(tag_ids=())]])
        summary = vision.periodic()

        assert len(sink.poses[f"{NS}/Summary/RobotPosesAccepted"]) == 1
        assert len(sink.poses[f"{NS}/Summary/RobotPosesRejected"]) == 1
        assert len(consumer.calls) == 1
        assert [c.observations for c in summary.cameras] == [2, 0]
        assert sink.poses[f"{NS}/Camera1/RobotPoses"] == []


class TestTelemetry:
    """What the sink receives every cycle"""

    def test_key_order(self, layout):
        sink = OrderedSink()
        vision, *_ = _vision(layout, [[_snap(make_obs())], [_snap(make_obs())]], sink=sink)
        vision.periodic()

        per_cam = lambda i: [
            f"{NS}/Alerts/Camera{i}",
            f"{NS}/Camera{i}/TagPoses",
            f"{NS}/Camera{i}/RobotPoses",
            f"{NS}/Camera{i}/RobotPosesAccepted",
            f"{NS}/Camera{i}/RobotPosesRejected",
        ]
        assert sink.keys == (
            [f"{NS}/Camera0", f"{NS}/Camera1"]
            + per_cam(0)
            + per_cam(1)
            + [f"{NS}/Summary/TagPoses", f"{NS}/Summary/RobotPoses", f"{NS}/Summary/RobotPosesAccepted", f"{NS}/Summary/RobotPosesRejected"]
        )

    def test_summary_is_concatenation_in_camera_order(self, layout):
        a = [make_obs(1.0, 1.0), make_obs(-1.0, 1.0)]
        b = [make_obs(2.0, 2.0), make_obs(3.0, 3.0, 5.0)]
        vision, _, _, sink = _vision(layout, [[_snap(*a, tag_ids=(1,))], [_snap(*b, tag_ids=(2, 3))]])
        vision.periodic()

        p = sink.poses
        assert p[f"{NS}/Summary/RobotPoses"] == [o.pose for o in a + b]
        assert p[f"{NS}/Summary/RobotPosesAccepted"] == [a[0].pose, b[0].pose]
        assert p[f"{NS}/Summary/RobotPosesRejected"] == [a[1].pose, b[1].pose]
        assert p[f"{NS}/Summary/TagPoses"] == [layout.lookup(1), layout.lookup(2), layout.lookup(3)]
        for i in (0, 1):
            acc = p[f"{NS}/Camera{i}/RobotPosesAccepted"]
            rej = p[f"{NS}/Camera{i}/RobotPosesRejected"]
            assert len(acc) + len(rej) == len(p[f"{NS}/Camera{i}/RobotPoses"])

    def test_unknown_tags_skipped(self, layout):
        vision, _, _, sink = _vision(layout, [[_snap(tag_ids=(3, 99, 4, 1000))]])
        vision.periodic()
        assert sink.poses[f"{NS}/Camera0/TagPoses"] == [layout.lookup(3), layout.lookup(4)]

    def test_alert_recorded_every_cycle(self, layout):
        sink = OrderedSink()
        vision, *_ = _vision(layout, [[_snap(), _snap(), _snap()]], sink=sink)
        for _ in range(3):
            vision.periodic()
        assert sink.keys.count(f"{NS}/Alerts/Camera0") == 3

    def test_raw_inputs_logged(self, layout):
        snap = _snap(make_obs(), tag_ids=(4,))
        vision, _, _, sink = _vision(layout, [[snap]])
        vision.periodic()
        assert sink.inputs[f"{NS}/Camera0"] == snap
        assert vision.inputs(0) == snap

    def test_custom_namespace(self, layout):
        vision, _, _, sink = _vision(layout, [[_snap(make_obs())]], config=VisionConfig(namespace="Front"))
        vision.periodic()
        assert "Front/Summary/RobotPosesAccepted" in sink.poses
        assert "Front/Alerts/Camera0" in sink.alerts
        assert not any(k.startswith(NS) for k in sink.poses)


class TestSubsystem:
    """Other VisionSubsystem behavior"""

    def test_cameras_disconnected_before_first_cycle(self, layout):
        vision, *_ = _vision(layout, [[], []])
        assert vision.camera_count == 2
        assert len(vision.alerts) == 2
        assert vision.inputs(1) == CameraSnapshot()

    def test_connection_recovers(self, layout):
        vision, *_ = _vision(layout, [[_snap(connected=False), _snap()]])
        vision.periodic()
        assert not vision.connectivity.is_connected(0)
        vision.periodic()
        assert vision.connectivity.is_connected(0)
        assert vision.alerts == []

    def test_every_camera_refreshed_once_per_cycle(self, layout):
        vision, cams, *_ = _vision(layout, [[], [], []])
        for _ in range(4):
            vision.periodic()
        assert [c.refreshes for c in cams] == [4, 4, 4]

    def test_target_angles(self, layout):
        vision, *_ = _vision(layout, [[_snap(target=TargetObservation(0.25, -0.1))], [_snap()]])
        vision.periodic()
        assert vision.get_target_x(0) == pytest.approx(0.25)
        assert vision.get_target_y(0) == pytest.approx(-0.1)
        assert vision.get_target_x(1) == 0.0

    def test_consumer_called_in_camera_then_observation_order(self, layout):
        a = [make_obs(1.0, 1.0, t=1.0), make_obs(1.5, 1.0, t=1.1)]
        b = [make_obs(2.0, 2.0, t=0.5)]
        vision, _, consumer, _ = _vision(layout, [[_snap(*a)], [_snap(*b)]])
        vision.periodic()
        assert [c[1] for c in consumer.calls] == [1.0, 1.1, 0.5]

    def test_custom_std_dev_strategy(self, layout):
        seen = []

        def fixed(observation, camera_index):
            seen.append(camera_index)
            return np.array([1.0, 2.0, 3.0])

        vision, _, consumer, _ = _vision(layout, [[_snap(make_obs())], [_snap(make_obs(), make_obs(-1.0, 1.0))]], std_devs=fixed)
        vision.periodic()
        assert seen == [0, 1]
        np.testing.assert_array_equal(consumer.calls[0][2], [1.0, 2.0, 3.0])

    def test_default_std_devs_use_camera_factor(self, layout):
        sd = DynamicStdDevs(camera_factors=(1.0, 0.5))
        obs = make_obs(distance=2.0, tag_count=2)
        vision, _, consumer, _ = _vision(layout, [[_snap(obs)], [_snap(obs)]], std_devs=sd)
        vision.periodic()
        np.testing.assert_allclose(consumer.calls[1][2], consumer.calls[0][2] * 0.5)

    def test_measurement_queue_consumer(self, layout):
        q = MeasurementQueue(maxlen=2)
        vision, *_ = _vision(layout, [[_snap(make_obs(), make_obs(), make_obs())]], consumer=q)
        vision.periodic()
        assert q.total == 3
        assert len(q) == 2
        assert len(q.drain()) == 2
        assert len(q) == 0

    def test_cycle_counter(self, layout):
        vision, *_ = _vision(layout, [[]])
        assert [vision.periodic().cycle for _ in range(3)] == [1, 2, 3]

    def test_malformed_replay_row_does_not_halt_cycle(self, layout, tmp_path):
        """A replayed row of the wrong shape reads as disconnected; the other cameras still run"""
        p = tmp_path / "cam0.jsonl"
        p.write_text("[1, 2]\nnull\n" + '{"connected": true, "latest_target": [0.1]}\n')
        replay = ReplayCameraIO(str(p))
        scripted = ScriptedCameraIO([_snap(make_obs())] * 3)
        consumer = RecordingConsumer()
        sink = MemoryTelemetrySink()
        vision = VisionSubsystem(consumer, [replay, scripted], layout, sink, config=CFG)

        for _ in range(3):
            summary = vision.periodic()
            assert [c.connected for c in summary.cameras] == [False, True]
            assert sink.alerts[f"{NS}/Alerts/Camera0"]["active"] is True
        assert len(consumer.calls) == 3
        assert len(sink.poses[f"{NS}/Summary/RobotPosesAccepted"]) == 1

    def test_consumer_errors_propagate(self, layout):
        def broken(pose, ts, sd):
            raise RuntimeError("estimator down")

        vision, *_ = _vision(layout, [[_snap(make_obs())]], consumer=broken)
        with pytest.raises(RuntimeError):
            vision.periodic()
