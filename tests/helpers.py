from __future__ import annotations

from typing import Optional

from treadmill_gait.landmarks import Landmark, LandmarkIdx
from treadmill_gait.session import GaitEngine

FRAME_HEIGHT = 720
N_LANDMARKS = 33


def make_frame(
    right_y: Optional[float] = None,
    left_y: Optional[float] = None,
    vis: float = 0.9,
) -> list[Optional[Landmark]]:
    """33 landmarks; feet placed at pixel y (ankle == heel), hidden when y is None."""
    lms: list[Optional[Landmark]] = [Landmark(0.5, 0.5, vis) for _ in range(N_LANDMARKS)]
    feet = (
        (right_y, LandmarkIdx.RIGHT_ANKLE, LandmarkIdx.RIGHT_HEEL),
        (left_y, LandmarkIdx.LEFT_ANKLE, LandmarkIdx.LEFT_HEEL),
    )
    for y, ankle, heel in feet:
        if y is None:
            lms[ankle] = Landmark(0.5, 0.9, 0.0)
            lms[heel] = Landmark(0.5, 0.9, 0.0)
        else:
            lms[ankle] = Landmark(0.5, y / FRAME_HEIGHT, vis)
            lms[heel] = Landmark(0.5, y / FRAME_HEIGHT, vis)
    return lms


def tri(i: int, half: int = 10, lo: float = 400.0, hi: float = 500.0, shift: int = 0) -> float:
    """Triangle wave with peaks (value hi) at i = shift + half + k * 2 * half."""
    p = (i - shift) % (2 * half)
    frac = p / half if p <= half else (2 * half - p) / half
    return lo + (hi - lo) * frac


def feed(
    engine: GaitEngine,
    right: list[Optional[float]],
    left: Optional[list[Optional[float]]] = None,
    dt: float = 20.0,
    t0: float = 0.0,
) -> float:
    """Feed paired foot trajectories; returns the timestamp after the last frame."""
    for i, yr in enumerate(right):
        yl = left[i] if left is not None else None
        engine.process_frame(make_frame(right_y=yr, left_y=yl), t0 + i * dt)
    return t0 + len(right) * dt
