from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

from common.types import POSE_CATEGORIES


def load_last_jsonl(path: Path, max_rows: int, read_back_bytes: int = 1024 * 1024) -> List[Dict[str, Any]]:
    """
    Return up to `max_rows` most recent JSON rows from a telemetry JSONL file.
    Only the tail (`read_back_bytes`) is read; a partial first line is dropped,
    as are undecodable lines.
    """
    path = Path(path)
    if not path.exists():
        return []
    with path.open("rb") as f:
        f.seek(0, os.SEEK_END)
        size = f.tell()
        read_back = min(size, read_back_bytes)
        f.seek(size - read_back)
        chunk = f.read().decode("utf-8", errors="ignore")
    lines = [ln for ln in chunk.splitlines() if ln.strip()]
    if read_back < size and lines:
        lines = lines[1:]
    rows: List[Dict[str, Any]] = []
    for ln in lines[-max_rows:] if max_rows > 0 else lines:
        try:
            rows.append(json.loads(ln))
        except json.JSONDecodeError:
            continue
    return rows


def iter_jsonl(path: Path):
    """Stream every decodable row of a telemetry JSONL file."""
    with Path(path).open("r", encoding="utf-8") as f:
        for ln in f:
            ln = ln.strip()
            if not ln:
                continue
            try:
                yield json.loads(ln)
            except json.JSONDecodeError:
                continue


def latest_by_key(rows: List[Dict[str, Any]]) -> Dict[str, Dict[str, Any]]:
    """Last row seen for every key (rows must be in file order)."""
    out: Dict[str, Dict[str, Any]] = {}
    for r in rows:
        k = r.get("key")
        if isinstance(k, str):
            out[k] = r
    return out


def pose_counts(latest: Dict[str, Dict[str, Any]], prefix: str) -> Optional[Dict[str, int]]:
    """
    {Category: len(poses)} for `<prefix>/<Category>` keys, or None if none of the
    categories have been recorded under that prefix.
    """
    counts: Dict[str, int] = {}
    for cat in POSE_CATEGORIES:
        row = latest.get(f"{prefix}/{cat}")
        if row is not None:
            counts[cat] = len(row.get("poses") or [])
    return counts or None


def alert_states(latest: Dict[str, Dict[str, Any]], namespace: str) -> Dict[str, Dict[str, Any]]:
    """Latest alert row per camera: {"Camera0": {"text": ..., "active": ...}}."""
    prefix = f"{namespace}/Alerts/"
    return {k[len(prefix):]: dict(r["alert"]) for k, r in latest.items() if k.startswith(prefix) and "alert" in r}
