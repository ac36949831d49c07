"""
Vision status API over the telemetry JSONL written by the vision runner.

Run:
    uvicorn telemetry.server:app --port 8000
    python -m telemetry.server --config config/params.yaml
"""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Any, Dict, Optional

import uvicorn
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from common.config import load_params
from telemetry.reader import alert_states, latest_by_key, load_last_jsonl, pose_counts


MAX_ROWS = 5000  # enough for several cycles of every key


def create_app(telemetry_path: str, namespace: str = "AprilTagVision", max_rows: int = MAX_ROWS) -> FastAPI:
    app = FastAPI(title="AprilTag Vision Status API", version="1.0.0")

    # (Optional) CORS for local dev tools
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    path = Path(telemetry_path)

    def _latest() -> Dict[str, Dict[str, Any]]:
        rows = load_last_jsonl(path, max_rows)
        if not rows:
            raise HTTPException(status_code=404, detail="no_telemetry")
        return latest_by_key(rows)

    @app.get("/health")
    def health():
        return {
            "status": "ok",
            "telemetry": {"path": str(path), "exists": path.exists()},
            "namespace": namespace,
        }

    @app.get("/alerts")
    def alerts():
        states = alert_states(_latest(), namespace)
        return {
            "alerts": states,
            "active": sorted(v["text"] for v in states.values() if v.get("active")),
        }

    @app.get("/summary")
    def summary():
        counts = pose_counts(_latest(), f"{namespace}/Summary")
        if counts is None:
            raise HTTPException(status_code=404, detail="no_summary")
        return counts

    @app.get("/cameras/{index}")
    def camera(index: int):
        latest = _latest()
        counts = pose_counts(latest, f"{namespace}/Camera{index}")
        if counts is None:
            raise HTTPException(status_code=404, detail="unknown_camera")
        alert: Optional[Dict[str, Any]] = alert_states(latest, namespace).get(f"Camera{index}")
        inputs = latest.get(f"{namespace}/Camera{index}", {}).get("inputs")
        return {
            "index": index,
            "counts": counts,
            "connected": None if alert is None else not alert.get("active", True),
            "tag_ids": None if inputs is None else inputs.get("tag_ids", []),
        }

    return app


P = load_params()
app = create_app(P["telemetry"]["path"], P["vision"].get("namespace", "AprilTagVision"))


def main() -> None:
    ap = argparse.ArgumentParser(description="AprilTag vision status API")
    ap.add_argument("--config", default="config/params.yaml")
    ap.add_argument("--host", default=None)
    ap.add_argument("--port", type=int, default=None)
    args = ap.parse_args()

    params = load_params(args.config)
    tel = params["telemetry"]
    uvicorn.run(
        create_app(tel["path"], params["vision"].get("namespace", "AprilTagVision")),
        host=args.host or tel.get("host", "127.0.0.1"),
        port=int(args.port or tel.get("port", 8000)),
    )


if __name__ == "__main__":
    main()
