"""
Field — AprilTag field geometry

- Loads a WPILib-format AprilTag layout JSON (`config/field_layout.json`)
- lookup(tag_id) -> Pose3d | None, field_length / field_width, bounds

Usage:
    from field.layout import FieldLayout
    layout = FieldLayout.from_json("config/field_layout.json")
"""
from .layout import FieldGeometry, FieldLayout

__all__ = ["FieldGeometry", "FieldLayout"]
