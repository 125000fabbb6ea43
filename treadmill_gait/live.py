"""
Live webcam pipeline: capture, pose, gait engine with warm-up and countdown.
Keys: s=start, c=calibrate ground, x=stop, r=reset, q=quit.
Writes the CSV table and a JSON summary on exit.
"""
from __future__ import annotations

import logging
import os
import time
from dataclasses import replace
from typing import Optional

import cv2

from .config import EngineConfig
from .export import write_csv, write_summary
from .io_stream import webcam_frames
from .pose import create_pose_detector, process_frame
from .session import GaitEngine, SessionState

logger = logging.getLogger(__name__)

# Target resize width for faster inference
LIVE_RESIZE_WIDTH = 960
# No-pose warning after this many seconds
NO_POSE_WARN_SEC = 2.0


def _title(status: dict, message: Optional[str]) -> str:
    parts = [
        status["label"],
        f"Quality: {status['quality'] or '-'}",
        status["facing"] or "-",
        f"Last: {status['last_side'] or '-'}",
    ]
    freq = status.get("last_stride_freq_hz")
    if freq is not None:
        parts.append(f"{freq:.3f} Hz")
    if message:
        parts.append(message)
    return " | ".join(parts)


def run_live_pipeline(
    config: Optional[EngineConfig] = None,
    camera_id: int = 0,
    target_fps: float = 30,
    warm_up: bool = True,
    calibrate: bool = False,
    output_dir: str = "outputs",
) -> GaitEngine:
    """
    Run live capture loop until q or Ctrl+C.
    With calibrate=True the ground window opens automatically when the session starts.
    """
    os.makedirs(output_dir, exist_ok=True)
    config = config or EngineConfig()
    pose = create_pose_detector()
    engine: Optional[GaitEngine] = None
    last_pose_time = time.perf_counter()
    message: Optional[str] = None
    win_name = "Treadmill Gait (s=start, c=calibrate, x=stop, r=reset, q=quit)"

    cv2.namedWindow(win_name, cv2.WINDOW_NORMAL)

    try:
        for frame_bgr, t_ms in webcam_frames(camera_id, target_fps=target_fps):
            h, w = frame_bgr.shape[:2]
            if engine is None:
                engine = GaitEngine(replace(config, frame_height=h))

            # Resize for inference; landmarks are normalized so no rescale is needed
            if w > LIVE_RESIZE_WIDTH:
                small = cv2.resize(frame_bgr, (LIVE_RESIZE_WIDTH, int(round(h * LIVE_RESIZE_WIDTH / w))))
            else:
                small = frame_bgr
            landmarks = process_frame(small, pose)
            if landmarks is not None:
                last_pose_time = time.perf_counter()

            prev_state = engine.state
            status = engine.process_frame(landmarks, t_ms)
            if prev_state is SessionState.ANALYZING and engine.state is SessionState.IDLE:
                message = "Done" if engine.stop_reason == "quota" else None

            if time.perf_counter() - last_pose_time > NO_POSE_WARN_SEC:
                message = "Move into frame"
            elif message == "Move into frame":
                message = None

            cv2.setWindowTitle(win_name, _title(status, message))
            cv2.imshow(win_name, frame_bgr)
            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("s"):
                engine.start(t_ms, warm_up=warm_up)
                if calibrate:
                    engine.begin_calibration(t_ms)
                message = None
            if key == ord("c"):
                if not engine.begin_calibration(t_ms):
                    message = "Start a session first"
            if key == ord("x"):
                engine.stop()
            if key == ord("r"):
                engine.reset()
                message = "Reset"
    except KeyboardInterrupt:
        logger.info("live: interrupted")
    finally:
        cv2.destroyAllWindows()

    if engine is None:
        return GaitEngine(config)
    engine.stop()
    write_csv(engine.rows, output_dir)
    write_summary(engine.rows, output_dir, engine.status())
    return engine
