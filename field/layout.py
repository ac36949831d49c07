from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Protocol, Tuple

from common.logging_setup import get_logger
from common.types import FieldBounds, Pose3d


log = get_logger("field")


class FieldGeometry(Protocol):
    """What the vision core needs to know about the field."""

    def lookup(self, tag_id: int) -> Optional[Pose3d]: ...

    @property
    def field_length(self) -> float: ...

    @property
    def field_width(self) -> float: ...


def _tag_entry_to_pose(entry: Mapping) -> Tuple[int, Pose3d]:
    """
    Parse one WPILib layout entry:
      {"ID": 7, "pose": {"translation": {"x","y","z"},
                         "rotation": {"quaternion": {"W","X","Y","Z"}}}}
    """
    tag_id = int(entry["ID"])
    pose = entry["pose"]
    t = pose["translation"]
    q = pose.get("rotation", {}).get("quaternion", {"W": 1.0, "X": 0.0, "Y": 0.0, "Z": 0.0})
    return tag_id, Pose3d(
        float(t["x"]),
        float(t["y"]),
        float(t["z"]),
        (float(q["W"]), float(q["X"]), float(q["Y"]), float(q["Z"])),
    )


class FieldLayout:
    """
    In-memory AprilTag field layout.

    Unknown tag ids resolve to None; callers skip them. Malformed tag entries are
    dropped at load time (logged), a missing/invalid field size is a ValueError.
    """

    def __init__(self, tags: Mapping[int, Pose3d], field_length: float, field_width: float):
        self._tags: Dict[int, Pose3d] = {int(k): v for k, v in tags.items()}
        self._bounds = FieldBounds(float(field_length), float(field_width))

    # -------- constructors --------

    @classmethod
    def from_dict(cls, d: Mapping) -> "FieldLayout":
        fld = d.get("field")
        if not isinstance(fld, Mapping) or "length" not in fld or "width" not in fld:
            raise ValueError("field layout is missing 'field': {'length', 'width'}")
        tags: Dict[int, Pose3d] = {}
        skipped = 0
        for entry in d.get("tags", []):
            try:
                tag_id, pose = _tag_entry_to_pose(entry)
            except (KeyError, TypeError, ValueError):
                skipped += 1
                continue
            tags[tag_id] = pose
        if skipped:
            log.warning("Skipped malformed tag entries", extra={"extra": {"skipped": skipped}})
        return cls(tags, float(fld["length"]), float(fld["width"]))

    @classmethod
    def from_json(cls, path: str) -> "FieldLayout":
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Field layout not found: {path}")
        layout = cls.from_dict(json.loads(p.read_text()))
        log.info("Loaded field layout", extra={"extra": {"path": str(p), **layout.stats()}})
        return layout

    # -------- public API --------

    def lookup(self, tag_id: int) -> Optional[Pose3d]:
        return self._tags.get(int(tag_id))

    @property
    def field_length(self) -> float:
        return self._bounds.length_m

    @property
    def field_width(self) -> float:
        return self._bounds.width_m

    @property
    def bounds(self) -> FieldBounds:
        return self._bounds

    @property
    def tag_ids(self) -> List[int]:
        return sorted(self._tags)

    def stats(self) -> Dict[str, float]:
        return {
            "tags": len(self._tags),
            "length_m": self.field_length,
            "width_m": self.field_width,
        }
