"""
Landmark schema, visibility gate and facing heuristic.
Landmarks are MediaPipe Pose normalized coordinates (x, y in 0..1) with visibility.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Sequence


# MediaPipe Pose landmark indices (same as PoseLandmark)
class LandmarkIdx:
    NOSE = 0
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


# Landmarks summed per body side for the facing heuristic.
LEFT_SIDE = (
    LandmarkIdx.LEFT_SHOULDER,
    LandmarkIdx.LEFT_HIP,
    LandmarkIdx.LEFT_KNEE,
    LandmarkIdx.LEFT_ANKLE,
    LandmarkIdx.LEFT_HEEL,
    LandmarkIdx.LEFT_FOOT_INDEX,
)
RIGHT_SIDE = (
    LandmarkIdx.RIGHT_SHOULDER,
    LandmarkIdx.RIGHT_HIP,
    LandmarkIdx.RIGHT_KNEE,
    LandmarkIdx.RIGHT_ANKLE,
    LandmarkIdx.RIGHT_HEEL,
    LandmarkIdx.RIGHT_FOOT_INDEX,
)
# Visibility-sum difference below which the view is treated as ambiguous.
FACING_MARGIN = 0.35

SIDES = ("R", "L")


@dataclass(frozen=True)
class Landmark:
    x: float
    y: float
    visibility: float = 0.0


LandmarkFrame = Sequence[Optional[Landmark]]


class Lookup(enum.Enum):
    MISSING = "missing"
    LOW_VISIBILITY = "low_visibility"
    OK = "ok"


class Facing(str, enum.Enum):
    LEFT = "Facing Left"
    RIGHT = "Facing Right"
    UNKNOWN = "Unknown"


@dataclass(frozen=True)
class FootReading:
    ok: bool
    y: Optional[float] = None


NOT_OK = FootReading(False, None)


def side_name(side: str) -> str:
    return "Right" if side == "R" else "Left"


def opposite(side: str) -> str:
    return "L" if side == "R" else "R"


def get_landmark(frame: Optional[LandmarkFrame], idx: int) -> Optional[Landmark]:
    if not frame or idx >= len(frame):
        return None
    return frame[idx]


def lookup(
    frame: Optional[LandmarkFrame],
    idx: int,
    vis_thresh: float,
) -> tuple[Lookup, Optional[Landmark]]:
    """Return (state, landmark); a missing landmark and a faint one are reported separately."""
    lm = get_landmark(frame, idx)
    if lm is None:
        return Lookup.MISSING, None
    if lm.visibility < vis_thresh:
        return Lookup.LOW_VISIBILITY, lm
    return Lookup.OK, lm


def _foot_indices(side: str) -> tuple[int, int]:
    if side == "R":
        return LandmarkIdx.RIGHT_ANKLE, LandmarkIdx.RIGHT_HEEL
    return LandmarkIdx.LEFT_ANKLE, LandmarkIdx.LEFT_HEEL


def foot_y(
    frame: Optional[LandmarkFrame],
    side: str,
    vis_thresh: float,
    frame_height: float,
) -> FootReading:
    """
    Vertical pixel position of one foot: midpoint of ankle and heel.
    ok only when both landmarks exist with visibility >= vis_thresh.
    """
    ankle_idx, heel_idx = _foot_indices(side)
    ankle_state, ankle = lookup(frame, ankle_idx, vis_thresh)
    heel_state, heel = lookup(frame, heel_idx, vis_thresh)
    if ankle_state is not Lookup.OK or heel_state is not Lookup.OK:
        return NOT_OK
    return FootReading(True, (ankle.y + heel.y) / 2.0 * frame_height)


def heel_y(
    frame: Optional[LandmarkFrame],
    side: str,
    vis_thresh: float,
    frame_height: float,
) -> Optional[float]:
    _, heel_idx = _foot_indices(side)
    state, heel = lookup(frame, heel_idx, vis_thresh)
    if state is not Lookup.OK:
        return None
    return heel.y * frame_height


def lowest_heel_y(
    frame: Optional[LandmarkFrame],
    vis_thresh: float,
    frame_height: float,
) -> Optional[float]:
    """Lower of the visible heels (larger y = lower in image), or None."""
    ys = [
        y
        for y in (heel_y(frame, s, vis_thresh, frame_height) for s in SIDES)
        if y is not None
    ]
    return max(ys) if ys else None


def _visibility_sum(frame: Optional[LandmarkFrame], indices: Sequence[int]) -> float:
    total = 0.0
    for idx in indices:
        lm = get_landmark(frame, idx)
        if lm is not None:
            total += lm.visibility
    return total


def facing_from_sums(left: float, right: float) -> Facing:
    # The side nearer the camera is more visible; the runner faces the other way.
    diff = left - right
    if abs(diff) < FACING_MARGIN:
        return Facing.UNKNOWN
    return Facing.RIGHT if diff > 0 else Facing.LEFT


def estimate_facing(frame: Optional[LandmarkFrame]) -> Facing:
    return facing_from_sums(
        _visibility_sum(frame, LEFT_SIDE),
        _visibility_sum(frame, RIGHT_SIDE),
    )


def frame_from_dicts(points: Sequence[Optional[dict]]) -> list[Optional[Landmark]]:
    """Build a LandmarkFrame from [{x, y, visibility}, ...] (JSON payloads, fixtures)."""
    out: list[Optional[Landmark]] = []
    for p in points:
        if not p:
            out.append(None)
            continue
        out.append(Landmark(
            float(p.get("x", 0.0)),
            float(p.get("y", 0.0)),
            float(p.get("visibility", 0.0)),
        ))
    return out
