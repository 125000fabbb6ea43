"""
Offline (uploaded video) analysis: pose on every frame, engine starts analyzing
immediately and stops at the end of the video or when the step quota is reached.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from .config import EngineConfig
from .io_stream import video_frames
from .pose import create_pose_detector, process_frame
from .session import GaitEngine, SessionState

logger = logging.getLogger(__name__)


def analyze_video(
    video_path: str,
    config: Optional[EngineConfig] = None,
    warm_up: bool = False,
    pose=None,
) -> GaitEngine:
    """Run the whole video through a fresh engine and return it (rows + status)."""
    config = config or EngineConfig()
    pose = pose or create_pose_detector()
    engine: Optional[GaitEngine] = None
    n_frames = 0
    for frame_bgr, t_ms in video_frames(video_path):
        if engine is None:
            engine = GaitEngine(replace(config, frame_height=frame_bgr.shape[0]))
            engine.start(t_ms, warm_up=warm_up)
        landmarks = process_frame(frame_bgr, pose)
        engine.process_frame(landmarks, t_ms)
        n_frames += 1
        if engine.state is SessionState.IDLE:
            break
    if engine is None:
        logger.warning("offline: no frames decoded from %s", video_path)
        return GaitEngine(config)
    engine.stop("end of video")
    logger.info(
        "offline: %s frames, %s steps, quality=%s",
        n_frames, engine.metrics.step_count, engine.quality.classification(),
    )
    return engine
