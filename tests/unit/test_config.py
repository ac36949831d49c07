"""
Unit tests for params loading and derived configs (common.config, vision.config)
"""

import os
import sys

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from common.config import DEFAULT_PARAMS, load_params
from vision.config import MAX_AMBIGUITY_CUTOFF, MAX_Z_ERROR, VisionConfig
from vision.std_devs import DynamicStdDevs


class TestLoadParams:

    def test_missing_file_gives_defaults(self, tmp_path):
        P = load_params(str(tmp_path / "none.yaml"))
        assert P == DEFAULT_PARAMS
        P["vision"]["max_ambiguity"] = 0.9
        assert DEFAULT_PARAMS["vision"]["max_ambiguity"] == 0.3

    def test_partial_override_merges(self, tmp_path):
        p = tmp_path / "params.yaml"
        p.write_text("vision:\n  max_ambiguity: 0.15\nrunner:\n  rate_hz: 100\n")
        P = load_params(str(p))
        assert P["vision"]["max_ambiguity"] == 0.15
        assert P["vision"]["max_z_error_m"] == 0.75
        assert P["runner"]["rate_hz"] == 100
        assert P["runner"]["progress_every"] == 250

    def test_lists_replace(self, tmp_path):
        p = tmp_path / "params.yaml"
        p.write_text("cameras:\n  - type: sim\n    pattern: hold\n")
        assert load_params(str(p))["cameras"] == [{"type": "sim", "pattern": "hold"}]

    def test_non_mapping_rejected(self, tmp_path):
        p = tmp_path / "params.yaml"
        p.write_text("- 1\n- 2\n")
        with pytest.raises(ValueError):
            load_params(str(p))

    def test_shipped_params(self):
        P = load_params(os.path.join(project_root, "config", "params.yaml"))
        assert len(P["cameras"]) == 2
        assert P["vision"]["max_distance_cutoff_m"] is None


class TestVisionConfig:

    def test_defaults(self):
        cfg = VisionConfig()
        assert cfg.max_ambiguity == MAX_AMBIGUITY_CUTOFF == 0.3
        assert cfg.max_z_error_m == MAX_Z_ERROR == 0.75
        assert cfg.max_distance_cutoff_m is None
        assert cfg.namespace == "AprilTagVision"

    def test_from_params(self):
        P = {"vision": {"max_ambiguity": 0.1, "max_z_error_m": 0.5, "max_distance_cutoff_m": 7, "namespace": "Vision"}}
        cfg = VisionConfig.from_params(P)
        assert cfg == VisionConfig(0.1, 0.5, 7.0, "Vision")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"max_ambiguity": 1.5},
            {"max_ambiguity": -0.1},
            {"max_z_error_m": -1.0},
            {"max_distance_cutoff_m": 0.0},
            {"namespace": ""},
        ],
    )
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            VisionConfig(**kwargs)

    def test_defaults_roundtrip_through_params(self):
        assert VisionConfig.from_params(DEFAULT_PARAMS) == VisionConfig()
        assert DynamicStdDevs.from_params(DEFAULT_PARAMS) == DynamicStdDevs()
