"""
Unified frame generator for video file or webcam.
Yields (frame_bgr, t_ms) where t_ms is the video playback position for files
and wall-clock milliseconds since capture start for the webcam.
"""
from __future__ import annotations

import time
from typing import Generator

import cv2
import numpy as np


def video_frames(video_path: str) -> Generator[tuple[np.ndarray, float], None, None]:
    """
    Yield frames from a video file.
    Yields: (frame_bgr, t_ms) using the container timestamp when available.
    """
    cap = cv2.VideoCapture(video_path)
    if not cap.isOpened():
        raise FileNotFoundError(f"Cannot open video: {video_path}")
    try:
        fps = cap.get(cv2.CAP_PROP_FPS) or 30.0
        idx = 0
        t_prev = -1.0
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            t_ms = cap.get(cv2.CAP_PROP_POS_MSEC)
            # Some backends report 0 for every frame; fall back to index / fps.
            if not t_ms or t_ms <= t_prev:
                t_ms = idx * 1000.0 / fps
            t_ms = max(t_ms, t_prev)
            t_prev = t_ms
            yield (frame, float(t_ms))
            idx += 1
    finally:
        cap.release()


def webcam_frames(
    camera_id: int = 0,
    target_fps: float = 30,
) -> Generator[tuple[np.ndarray, float], None, None]:
    """
    Yield frames from webcam with graceful shutdown.
    Yields: (frame_bgr, t_ms) with t_ms from a monotonic clock.
    """
    cap = cv2.VideoCapture(camera_id)
    if not cap.isOpened():
        raise RuntimeError(f"Cannot open camera {camera_id}. Check permissions and that no other app is using it.")
    try:
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, 1280)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, 720)
        cap.set(cv2.CAP_PROP_FPS, target_fps)
        t0 = time.perf_counter()
        while True:
            ret, frame = cap.read()
            if not ret:
                break
            yield (frame, (time.perf_counter() - t0) * 1000.0)
    finally:
        cap.release()
