import os
import sys

import pytest

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from common.types import Pose3d
from field.layout import FieldLayout


@pytest.fixture
def layout():
    """Small 16.541 x 8.211 m field with four tags (ids 1..4)."""
    tags = {
        1: Pose3d.from_xyz_rpy(15.08, 0.25, 1.36, yaw=2.094),
        2: Pose3d.from_xyz_rpy(16.19, 0.88, 1.36, yaw=2.094),
        3: Pose3d.from_xyz_rpy(11.22, 4.11, 1.32, yaw=3.1416),
        4: Pose3d.from_xyz_rpy(5.32, 4.11, 1.32),
    }
    return FieldLayout(tags, 16.541, 8.211)


@pytest.fixture
def layout_path():
    return os.path.join(project_root, "config", "field_layout.json")
