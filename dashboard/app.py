"""
AprilTag Vision Dashboard (Streamlit)

- Tails logs/telemetry.jsonl written by the vision runner
- Shows live KPIs: accepted / rejected poses, cameras connected, active alerts
- Plots accepted vs rejected robot poses on the field
- Per-camera table of the latest cycle

Run:
    streamlit run dashboard/app.py
"""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List

import pandas as pd
import streamlit as st

from common.config import load_params
from telemetry.reader import alert_states, latest_by_key, load_last_jsonl, pose_counts


# -------------------------
# Config
# -------------------------
MAX_ROWS = 20000  # how many recent telemetry rows to load
PLOT_CYCLES = 400  # how many recent accepted/rejected arrays to plot


# -------------------------
# Helpers
# -------------------------
def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def poses_frame(rows: List[Dict[str, Any]], namespace: str, max_cycles: int) -> pd.DataFrame:
    """x/y of recent summary poses, labelled accepted / rejected."""
    acc_key = f"{namespace}/Summary/RobotPosesAccepted"
    rej_key = f"{namespace}/Summary/RobotPosesRejected"
    acc = [r for r in rows if r.get("key") == acc_key][-max_cycles:]
    rej = [r for r in rows if r.get("key") == rej_key][-max_cycles:]
    recs = []
    for label, series in (("accepted", acc), ("rejected", rej)):
        for r in series:
            for p in r.get("poses") or []:
                recs.append({"x": float(p[0]), "y": float(p[1]), "z": float(p[2]), "verdict": label})
    return pd.DataFrame(recs, columns=["x", "y", "z", "verdict"])


def camera_frame(latest: Dict[str, Dict[str, Any]], namespace: str) -> pd.DataFrame:
    alerts = alert_states(latest, namespace)
    recs = []
    i = 0
    while True:
        counts = pose_counts(latest, f"{namespace}/Camera{i}")
        if counts is None:
            break
        alert = alerts.get(f"Camera{i}", {})
        recs.append({"camera": i, "connected": not alert.get("active", True), **counts})
        i += 1
    return pd.DataFrame(recs)


# -------------------------
# UI
# -------------------------
P = load_params()
st.set_page_config(page_title="AprilTag Vision Dashboard", layout="wide")
st.title("AprilTag Vision: Observation Gate Dashboard")

with st.sidebar:
    st.subheader("Data Sources")
    log_path = st.text_input("Telemetry JSONL", str(P["telemetry"]["path"]))
    namespace = st.text_input("Namespace", str(P["vision"].get("namespace", "AprilTagVision")))
    refresh = st.button("Refresh now")
    st.caption("Tip: Keep this page open; click Refresh to pull the latest telemetry.")

rows = load_last_jsonl(Path(log_path), MAX_ROWS)
if not rows:
    st.warning("No telemetry found yet. Start the vision runner: `python -m vision.runner`.")
    st.stop()

latest = latest_by_key(rows)
summary = pose_counts(latest, f"{namespace}/Summary") or {}
cams = camera_frame(latest, namespace)
active = [a["text"] for a in alert_states(latest, namespace).values() if a.get("active")]

# KPI row
k1, k2, k3, k4 = st.columns(4)
k1.metric("Accepted (last cycle)", f"{summary.get('RobotPosesAccepted', 0)}")
k2.metric("Rejected (last cycle)", f"{summary.get('RobotPosesRejected', 0)}")
k3.metric("Tags seen (last cycle)", f"{summary.get('TagPoses', 0)}")
k4.metric("Cameras connected", f"{int(cams['connected'].sum()) if not cams.empty else 0}/{len(cams)}")

for text in active:
    st.error(text)

st.subheader("Robot poses (recent cycles)")
df = poses_frame(rows, namespace, PLOT_CYCLES)
if df.empty:
    st.info("No robot poses recorded yet.")
else:
    st.scatter_chart(df, x="x", y="y", color="verdict", height=420)
    rej = df[df["verdict"] == "rejected"]
    st.caption(f"{len(df) - len(rej)} accepted · {len(rej)} rejected over the last {PLOT_CYCLES} cycles")

st.subheader("Cameras (latest cycle)")
if cams.empty:
    st.info("No per-camera telemetry yet.")
else:
    st.dataframe(cams, use_container_width=True)

st.caption(f"Source: {log_path} · Last refresh: {_now_iso()} · Rows loaded: {len(rows)} (up to {MAX_ROWS})")
