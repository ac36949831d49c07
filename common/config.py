from __future__ import annotations

import copy
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_PARAMS: Dict[str, Any] = {
    "vision": {
        "namespace": "AprilTagVision",
        "max_ambiguity": 0.3,
        "max_z_error_m": 0.75,
        "max_distance_cutoff_m": None,
        "linear_std_dev_baseline": 0.02,
        "angular_std_dev_baseline": 0.06,
        "camera_std_dev_factors": [1.0, 1.0],
    },
    "field": {"layout_path": "config/field_layout.json"},
    "cameras": [
        {"type": "sim", "pattern": "circle"},
        {"type": "sim", "pattern": "circle", "seed": 4321},
    ],
    "runner": {"rate_hz": 50.0, "progress_every": 250},
    "telemetry": {
        "path": "logs/telemetry.jsonl",
        "measurements_path": "logs/measurements.jsonl",
        "host": "127.0.0.1",
        "port": 8000,
    },
    "logging": {"level": "INFO", "file": None},
}


def _merge(base: Dict[str, Any], over: Dict[str, Any]) -> Dict[str, Any]:
    out = copy.deepcopy(base)
    for k, v in (over or {}).items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = copy.deepcopy(v)
    return out


def load_params(path: Optional[str] = "config/params.yaml") -> Dict[str, Any]:
    """
    Load params.yaml merged over DEFAULT_PARAMS.

    A missing file yields the defaults (handy for tests and first runs);
    a file that is not a YAML mapping is a ValueError.
    """
    if path is None or not Path(path).exists():
        return copy.deepcopy(DEFAULT_PARAMS)
    with open(path, "r") as f:
        P = yaml.safe_load(f) or {}
    if not isinstance(P, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return _merge(DEFAULT_PARAMS, P)
