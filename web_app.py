from __future__ import annotations

import logging
import shutil
import tempfile
import threading
import uuid
from pathlib import Path
from typing import Optional

# Ensure session and strike logging is visible when running under uvicorn
logging.getLogger("treadmill_gait.session").setLevel(logging.INFO)
logging.getLogger("treadmill_gait.metrics").setLevel(logging.INFO)

from dotenv import load_dotenv
from fastapi import FastAPI, File, HTTPException, UploadFile
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel

from treadmill_gait.config import EngineConfig
from treadmill_gait.export import default_csv_name, rows_to_csv, summarize
from treadmill_gait.landmarks import frame_from_dicts
from treadmill_gait.session import GaitEngine

load_dotenv()

logger = logging.getLogger(__name__)

app = FastAPI(title="Treadmill Gait Lab")

# One engine per process; frames are processed one at a time.
_ENGINE = GaitEngine(EngineConfig.from_env())
_ENGINE_LOCK = threading.Lock()

_VIDEO_SUFFIXES = {".mp4", ".mov", ".mkv", ".avi", ".webm"}


class LandmarkIn(BaseModel):
    x: float
    y: float
    visibility: float = 0.0


class FrameIn(BaseModel):
    t_ms: float
    # None (or omitted) when the pose model found nobody in this frame
    landmarks: Optional[list[Optional[LandmarkIn]]] = None


class TimeIn(BaseModel):
    t_ms: float


class StartIn(BaseModel):
    t_ms: float = 0.0
    warm_up: bool = True
    calibrate: bool = False
    belt_speed: Optional[float] = None
    speed_unit: Optional[str] = None
    vis_thresh: Optional[float] = None
    min_strike_ms: Optional[float] = None
    smoothing_window: Optional[int] = None
    ground_tolerance_px: Optional[float] = None
    ground_gate: bool = True
    frame_height: Optional[int] = None


def _config_from(req: StartIn) -> EngineConfig:
    return EngineConfig.from_env(
        belt_speed=req.belt_speed,
        speed_unit=req.speed_unit,
        vis_thresh=req.vis_thresh,
        min_strike_ms=req.min_strike_ms,
        smoothing_window=req.smoothing_window,
        ground_tolerance_px=req.ground_tolerance_px,
        frame_height=req.frame_height,
        ground_gate=req.ground_gate,
    )


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/session/start")
def session_start(req: StartIn) -> dict:
    global _ENGINE
    if req.speed_unit is not None and req.speed_unit not in ("ms", "kmh"):
        raise HTTPException(status_code=400, detail="speed_unit must be 'ms' or 'kmh'.")
    with _ENGINE_LOCK:
        _ENGINE = GaitEngine(_config_from(req))
        _ENGINE.start(req.t_ms, warm_up=req.warm_up)
        if req.calibrate:
            _ENGINE.begin_calibration(req.t_ms)
        return _ENGINE.status()


@app.post("/session/stop")
def session_stop() -> dict:
    with _ENGINE_LOCK:
        _ENGINE.stop()
        return _ENGINE.status()


@app.post("/session/reset")
def session_reset() -> dict:
    with _ENGINE_LOCK:
        _ENGINE.reset()
        return _ENGINE.status()


@app.post("/session/calibrate")
def session_calibrate(req: TimeIn) -> dict:
    with _ENGINE_LOCK:
        if not _ENGINE.begin_calibration(req.t_ms):
            raise HTTPException(status_code=409, detail="No active session to calibrate.")
        return _ENGINE.status()


@app.post("/session/tick")
def session_tick(req: TimeIn) -> dict:
    with _ENGINE_LOCK:
        _ENGINE.tick(req.t_ms)
        return _ENGINE.status()


@app.post("/frames")
def post_frame(frame: FrameIn) -> dict:
    landmarks = None
    if frame.landmarks is not None:
        landmarks = frame_from_dicts([lm.model_dump() if lm is not None else None for lm in frame.landmarks])
    with _ENGINE_LOCK:
        return _ENGINE.process_frame(landmarks, frame.t_ms)


@app.get("/status")
def status() -> dict:
    with _ENGINE_LOCK:
        return _ENGINE.status()


@app.get("/rows")
def rows() -> list[dict]:
    with _ENGINE_LOCK:
        return [r.to_dict() for r in _ENGINE.rows]


@app.get("/rows.csv", response_class=PlainTextResponse)
def rows_csv() -> PlainTextResponse:
    with _ENGINE_LOCK:
        body = rows_to_csv(_ENGINE.rows)
    return PlainTextResponse(
        body,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{default_csv_name()}"'},
    )


@app.post("/analyze")
def analyze(
    video: UploadFile = File(...),
    belt_speed: float = 0.0,
    speed_unit: str = "ms",
) -> dict:
    if not video.filename:
        raise HTTPException(status_code=400, detail="Missing file name.")
    suffix = Path(video.filename).suffix.lower()
    if suffix not in _VIDEO_SUFFIXES:
        raise HTTPException(status_code=400, detail="Unsupported file type.")

    from treadmill_gait.offline import analyze_video

    job_dir = Path(tempfile.gettempdir()) / "treadmill_gait_jobs" / str(uuid.uuid4())
    job_dir.mkdir(parents=True, exist_ok=True)
    upload_path = job_dir / f"upload{suffix}"
    try:
        with upload_path.open("wb") as f:
            shutil.copyfileobj(video.file, f)
        engine = analyze_video(
            str(upload_path),
            EngineConfig.from_env(belt_speed=belt_speed, speed_unit=speed_unit),
        )
    except FileNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))
    finally:
        shutil.rmtree(job_dir, ignore_errors=True)
    logger.info("analyze: %s -> %s steps", video.filename, engine.metrics.step_count)
    return summarize(engine.rows, engine.status())


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("web_app:app", host="0.0.0.0", port=8000, reload=True)
