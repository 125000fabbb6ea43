"""
MediaPipe Pose estimation. Returns normalized landmarks with visibility
(a LandmarkFrame) for the single most prominent person, or None.
Uses Pose Landmarker task (MediaPipe 0.10+) with a legacy fallback.
"""
from __future__ import annotations

import logging
import os
import urllib.request
from typing import Optional

import cv2
import numpy as np

from .landmarks import Landmark

logger = logging.getLogger(__name__)

# Pose Landmarker model URL (full = better foot landmarks than lite at treadmill distance)
_POSE_MODEL_URL = "https://storage.googleapis.com/mediapipe-models/pose_landmarker/pose_landmarker_full/float16/1/pose_landmarker_full.task"
_POSE_MODEL_FILENAME = "pose_landmarker_full.task"


def _get_model_path(cache_dir: Optional[str] = None) -> str:
    """Return path to pose landmarker model, downloading if needed."""
    if cache_dir is None:
        cache_dir = os.path.join(os.path.dirname(__file__), "..", "models")
    os.makedirs(cache_dir, exist_ok=True)
    path = os.path.join(cache_dir, _POSE_MODEL_FILENAME)
    if not os.path.isfile(path):
        logger.info("pose: downloading model to %s", path)
        urllib.request.urlretrieve(_POSE_MODEL_URL, path)
    return path


def _create_landmarker(
    cache_dir: Optional[str],
    min_detection_confidence: float,
    min_tracking_confidence: float,
):
    """Create PoseLandmarker instance (MediaPipe 0.10+ tasks API)."""
    from mediapipe.tasks.python.core import base_options
    from mediapipe.tasks.python.vision import PoseLandmarker, PoseLandmarkerOptions
    from mediapipe.tasks.python.vision.core import vision_task_running_mode

    model_path = _get_model_path(cache_dir)
    base = base_options.BaseOptions(model_asset_path=model_path)
    options = PoseLandmarkerOptions(
        base_options=base,
        running_mode=vision_task_running_mode.VisionTaskRunningMode.IMAGE,
        num_poses=1,
        min_pose_detection_confidence=min_detection_confidence,
        min_pose_presence_confidence=min_detection_confidence,
        min_tracking_confidence=min_tracking_confidence,
    )
    return PoseLandmarker.create_from_options(options)


def _to_frame(landmarks) -> list[Optional[Landmark]]:
    return [
        Landmark(float(lm.x), float(lm.y), float(getattr(lm, "visibility", 0.0) or 0.0))
        for lm in landmarks
    ]


def process_frame(
    frame_bgr: np.ndarray,
    pose,  # PoseLandmarker or legacy mp.solutions.pose.Pose
) -> Optional[list[Optional[Landmark]]]:
    """
    Run pose estimation on one BGR frame.
    Returns 33 normalized landmarks (x, y, visibility), or None if no pose.
    """
    rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)

    # MediaPipe 0.10+ PoseLandmarker
    if hasattr(pose, "detect"):
        from mediapipe.tasks.python.vision.core import image as mp_image
        mp_img = mp_image.Image(image_format=mp_image.ImageFormat.SRGB, data=rgb)
        result = pose.detect(mp_img)
        if not result.pose_landmarks or len(result.pose_landmarks) == 0:
            return None
        return _to_frame(result.pose_landmarks[0])
    # Legacy mp.solutions.pose.Pose (MediaPipe < 0.10)
    results = pose.process(rgb)
    if not results.pose_landmarks:
        return None
    return _to_frame(results.pose_landmarks.landmark)


def create_pose_detector(
    min_detection_confidence: float = 0.5,
    min_tracking_confidence: float = 0.5,
    model_complexity: int = 1,
    cache_dir: Optional[str] = None,
):
    """
    Create pose detector. Uses MediaPipe 0.10+ PoseLandmarker.
    model_complexity only applies to the legacy API.
    """
    try:
        return _create_landmarker(cache_dir, min_detection_confidence, min_tracking_confidence)
    except Exception as e:
        logger.warning("pose: PoseLandmarker unavailable (%s), using legacy API", e)
        import mediapipe as mp
        return mp.solutions.pose.Pose(
            static_image_mode=False,
            model_complexity=min(model_complexity, 2),
            smooth_landmarks=True,
            enable_segmentation=False,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
        )
