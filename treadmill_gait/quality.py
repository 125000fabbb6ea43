"""Tracking quality: share of frames in which both feet pass the visibility gate."""
from __future__ import annotations

from typing import Optional

GOOD_RATIO = 0.75
MEDIUM_RATIO = 0.45
# Frames needed before "Poor" is reported.
POOR_MIN_FRAMES = 15


class QualityMonitor:
    def __init__(self) -> None:
        self.good_frames = 0
        self.total_frames = 0

    def reset(self) -> None:
        self.good_frames = 0
        self.total_frames = 0

    def update(self, both_feet_ok: bool) -> None:
        self.total_frames += 1
        if both_feet_ok:
            self.good_frames += 1

    @property
    def ratio(self) -> float:
        return self.good_frames / self.total_frames if self.total_frames > 0 else 0.0

    def classification(self) -> Optional[str]:
        """Good / Medium / Poor, or None while there is not enough data."""
        q = self.ratio
        if q > GOOD_RATIO:
            return "Good"
        if q > MEDIUM_RATIO:
            return "Medium"
        if self.total_frames > POOR_MIN_FRAMES:
            return "Poor"
        return None
