#!/usr/bin/env python3
"""
Summarize a vision telemetry JSONL offline: per-camera observation totals,
accept/reject ratio, cycles with the camera disconnected, and tags seen.

Example:
  python -m vision.runner --cycles 1000 --telemetry logs/run1.jsonl
  python scripts/summarize_telemetry.py logs/run1.jsonl --json logs/run1.summary.json
"""
from __future__ import annotations

import argparse
import json
import re
import sys
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict

# Allow running from the repo root without installing
sys.path.append(str(Path(__file__).resolve().parents[1]))

from telemetry.reader import iter_jsonl  # noqa: E402


def summarize(path: Path, namespace: str) -> Dict[str, Any]:
    cam_re = re.compile(rf"^{re.escape(namespace)}/(Camera\d+|Summary)/(\w+)$")
    alert_re = re.compile(rf"^{re.escape(namespace)}/Alerts/(Camera\d+)$")
    per: Dict[str, Dict[str, Any]] = defaultdict(lambda: defaultdict(int))
    tags: Dict[str, set] = defaultdict(set)
    cycles = 0

    for row in iter_jsonl(path):
        key = row.get("key", "")
        m = cam_re.match(key)
        if m:
            scope, cat = m.groups()
            per[scope][cat] += len(row.get("poses") or [])
            if scope == "Summary" and cat == "RobotPoses":
                cycles += 1
            continue
        m = alert_re.match(key)
        if m and row.get("alert", {}).get("active"):
            per[m.group(1)]["disconnected_cycles"] += 1
            continue
        inputs = row.get("inputs")
        if inputs is not None and key.startswith(f"{namespace}/Camera"):
            tags[key[len(namespace) + 1:]].update(int(t) for t in inputs.get("tag_ids", []))

    out: Dict[str, Any] = {"cycles": cycles, "cameras": {}}
    for scope in sorted(per, key=lambda s: (s == "Summary", s)):
        d = per[scope]
        total = d.get("RobotPoses", 0)
        acc = d.get("RobotPosesAccepted", 0)
        entry = {
            "observations": total,
            "accepted": acc,
            "rejected": d.get("RobotPosesRejected", 0),
            "accept_ratio": round(acc / total, 3) if total else None,
        }
        if scope != "Summary":
            entry["disconnected_cycles"] = d.get("disconnected_cycles", 0)
            entry["tag_ids_seen"] = sorted(tags.get(scope, ()))
        out["cameras"][scope] = entry
    return out


def main():
    ap = argparse.ArgumentParser(description="Summarize vision telemetry JSONL")
    ap.add_argument("path", nargs="?", default="logs/telemetry.jsonl")
    ap.add_argument("--namespace", default="AprilTagVision")
    ap.add_argument("--json", default=None, help="Also write the summary as JSON here")
    args = ap.parse_args()

    path = Path(args.path)
    if not path.exists():
        raise SystemExit(f"Telemetry not found: {path}")

    s = summarize(path, args.namespace)
    print(f"{path}: {s['cycles']} cycles")
    print(f"{'scope':<10} {'obs':>8} {'acc':>8} {'rej':>8} {'ratio':>7} {'disc':>6}")
    for scope, e in s["cameras"].items():
        ratio = "-" if e["accept_ratio"] is None else f"{e['accept_ratio']:.3f}"
        disc = e.get("disconnected_cycles", "")
        print(f"{scope:<10} {e['observations']:>8} {e['accepted']:>8} {e['rejected']:>8} {ratio:>7} {disc:>6}")

    if args.json:
        Path(args.json).parent.mkdir(parents=True, exist_ok=True)
        Path(args.json).write_text(json.dumps(s, indent=2))
        print(f"Wrote {args.json}")


if __name__ == "__main__":
    main()
