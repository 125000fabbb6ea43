"""
Step and stride metrics from accepted foot strikes.
Lengths are derived from belt speed x elapsed time; horizontal motion is not observed.
"""
from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Optional

from .config import DEFAULT_STEP_QUOTA, MIN_REFRACTORY_MS
from .landmarks import opposite, side_name
from .strikes import FootChannel

logger = logging.getLogger(__name__)

# Minimum gap between accepted strikes of either foot (ms).
GLOBAL_REFRACTORY_MS = MIN_REFRACTORY_MS


@dataclass(frozen=True)
class StrikeEvent:
    side: str
    timestamp_ms: float


@dataclass(frozen=True)
class GaitRow:
    label: str
    step_time_ms: Optional[float] = None
    step_len_m: Optional[float] = None
    stride_time_ms: Optional[float] = None
    stride_len_m: Optional[float] = None
    stride_freq_hz: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _length_m(belt_speed_ms: float, time_ms: float) -> Optional[float]:
    # Missing rather than 0.0 when there is no usable speed.
    if not math.isfinite(belt_speed_ms) or belt_speed_ms <= 0:
        return None
    return belt_speed_ms * time_ms / 1000.0


class MetricsCalculator:
    """
    Turns strike candidates into GaitRows. Reads and updates the per-foot
    last-strike times on the channels it is given.
    """

    def __init__(self, belt_speed_ms: float = 0.0, step_quota: int = DEFAULT_STEP_QUOTA) -> None:
        self.belt_speed_ms = float(belt_speed_ms)
        self.step_quota = int(step_quota)
        self.rows: list[GaitRow] = []
        self.step_count = 0
        self.last_any_strike: Optional[StrikeEvent] = None
        self.last_side: Optional[str] = None
        self.last_stride_freq_hz: Optional[float] = None

    def reset(self) -> None:
        self.rows = []
        self.step_count = 0
        self.last_any_strike = None
        self.last_side = None
        self.last_stride_freq_hz = None

    @property
    def quota_reached(self) -> bool:
        return self.step_count >= self.step_quota

    def register(
        self,
        event: StrikeEvent,
        channels: dict[str, FootChannel],
    ) -> Optional[GaitRow]:
        """
        Accept a strike and append its row, or return None when it falls inside
        the cross-foot refractory window (or the quota is already used up).
        """
        if self.quota_reached:
            return None
        t = event.timestamp_ms
        if (
            self.last_any_strike is not None
            and (t - self.last_any_strike.timestamp_ms) < GLOBAL_REFRACTORY_MS
        ):
            logger.debug(
                "strike: %s at %.0fms rejected (%.0fms after %s)",
                event.side, t, t - self.last_any_strike.timestamp_ms, self.last_any_strike.side,
            )
            return None

        own = channels[event.side]
        other = channels[opposite(event.side)]

        stride_time = stride_len = stride_freq = None
        if own.last_strike_ms is not None:
            dt = t - own.last_strike_ms
            if dt > 0:
                stride_time = dt
                stride_freq = 1000.0 / dt
                stride_len = _length_m(self.belt_speed_ms, dt)

        step_time = step_len = None
        if other.last_strike_ms is not None:
            dt = t - other.last_strike_ms
            if dt > 0:
                step_time = dt
                step_len = _length_m(self.belt_speed_ms, dt)

        own.accept_strike(t)
        self.last_any_strike = event
        self.step_count += 1
        self.last_side = event.side
        if stride_freq is not None:
            self.last_stride_freq_hz = stride_freq

        row = GaitRow(
            label=f"{self.step_count} - {side_name(event.side)}",
            step_time_ms=step_time,
            step_len_m=step_len,
            stride_time_ms=stride_time,
            stride_len_m=stride_len,
            stride_freq_hz=stride_freq,
        )
        self.rows.append(row)
        logger.info(
            "strike: %s t=%.0fms step=%s stride=%s freq=%s",
            row.label, t, step_time, stride_time,
            None if stride_freq is None else round(stride_freq, 3),
        )
        if self.quota_reached:
            logger.info("strike: step quota %s reached", self.step_quota)
        return row
