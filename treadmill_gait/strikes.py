"""
Per-foot strike detection from the vertical foot trajectory.
Image y grows downward, so a foot strike (lowest foot point) is a local
maximum of the smoothed y signal, gated by refractory intervals and optionally
by proximity to the ground line.
"""
from __future__ import annotations

import collections
import logging
from typing import Optional

import numpy as np

from .config import EngineConfig
from .ground import GroundEstimate
from .landmarks import FootReading

logger = logging.getLogger(__name__)

# Ring capacity for raw and smoothed foot y (~2 s at 30 fps).
HISTORY_SIZE = 60
# Smoothed samples required before peaks are evaluated.
MIN_SMOOTHED_SAMPLES = 5


class FootChannel:
    """Raw and smoothed y history plus strike bookkeeping for one foot."""

    def __init__(self, side: str, maxlen: int = HISTORY_SIZE) -> None:
        self.side = side
        self.y_hist: collections.deque[float] = collections.deque(maxlen=maxlen)
        self.y_sm_hist: collections.deque[float] = collections.deque(maxlen=maxlen)
        self.last_strike_ms: Optional[float] = None
        self.last_max_ms: Optional[float] = None

    def reset(self) -> None:
        self.y_hist.clear()
        self.y_sm_hist.clear()
        self.last_strike_ms = None
        self.last_max_ms = None

    def push(self, y: float, window: int) -> float:
        self.y_hist.append(float(y))
        k = min(window, len(self.y_hist))
        tail = list(self.y_hist)[-k:]
        y_sm = float(np.mean(tail))
        self.y_sm_hist.append(y_sm)
        return y_sm

    def accept_strike(self, t_ms: float) -> None:
        if self.last_strike_ms is None or t_ms >= self.last_strike_ms:
            self.last_strike_ms = t_ms


def _is_local_max(y2: float, y1: float, y0: float) -> bool:
    return y1 > y2 and y1 > y0


def _slope_sign_change(y2: float, y1: float, y0: float) -> bool:
    return (y1 - y2) > 0 and (y0 - y1) < 0


class StrikeDetector:
    """
    Stateless over the channel it is handed: push one gated sample, return True
    when the smoothed trajectory confirms a strike at t_ms.
    """

    def __init__(self, config: EngineConfig) -> None:
        self.config = config

    def detect(
        self,
        channel: FootChannel,
        reading: FootReading,
        t_ms: float,
        ground: Optional[GroundEstimate] = None,
    ) -> bool:
        if not reading.ok or reading.y is None:
            return False
        cfg = self.config
        channel.push(reading.y, cfg.smoothing_window)
        if len(channel.y_sm_hist) < MIN_SMOOTHED_SAMPLES:
            return False

        y2, y1, y0 = channel.y_sm_hist[-3], channel.y_sm_hist[-2], channel.y_sm_hist[-1]
        if not _is_local_max(y2, y1, y0):
            return False
        if cfg.require_sign_change and not _slope_sign_change(y2, y1, y0):
            return False
        if (
            cfg.ground_tolerance_px is not None
            and ground is not None
            and ground.y is not None
            and abs(y1 - ground.y) > cfg.ground_tolerance_px
        ):
            logger.debug(
                "strike: %s peak y=%.1f off ground %.1f (tol %.0f)",
                channel.side, y1, ground.y, cfg.ground_tolerance_px,
            )
            return False

        if channel.last_strike_ms is not None and (t_ms - channel.last_strike_ms) < cfg.min_strike_ms:
            return False
        if channel.last_max_ms is not None and (t_ms - channel.last_max_ms) < cfg.max_refractory_gap_ms:
            return False

        channel.last_max_ms = t_ms
        return True
