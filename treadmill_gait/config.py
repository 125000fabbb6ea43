"""
Engine configuration. Every numeric input is clamped to its valid domain
rather than rejected; environment variables (GAIT_*) give host defaults.
"""
from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass, replace
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_VIS_THRESH = 0.55
DEFAULT_MIN_STRIKE_MS = 300.0
# Hard floor for any refractory interval (ms).
MIN_REFRACTORY_MS = 120.0
DEFAULT_SMOOTHING_WINDOW = 5
SMOOTHING_WINDOW_MAX = 15
DEFAULT_GROUND_TOLERANCE_PX = 18.0
GROUND_TOLERANCE_MIN_PX = 5.0
GROUND_TOLERANCE_MAX_PX = 80.0
DEFAULT_FRAME_HEIGHT = 720
# Accepted steps before the analysis ends on its own.
DEFAULT_STEP_QUOTA = 10

SPEED_UNITS = ("ms", "kmh")


def clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def speed_to_ms(value: Optional[float], unit: str = "ms") -> float:
    """Belt speed in m/s; zero, negative or non-finite input gives 0."""
    try:
        v = float(value) if value is not None else 0.0
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(v) or v <= 0:
        return 0.0
    return v / 3.6 if unit == "kmh" else v


@dataclass(frozen=True)
class EngineConfig:
    belt_speed: float = 0.0
    speed_unit: str = "ms"
    vis_thresh: float = DEFAULT_VIS_THRESH
    min_strike_ms: float = DEFAULT_MIN_STRIKE_MS
    smoothing_window: int = DEFAULT_SMOOTHING_WINDOW
    ground_tolerance_px: Optional[float] = DEFAULT_GROUND_TOLERANCE_PX
    require_sign_change: bool = True
    frame_height: int = DEFAULT_FRAME_HEIGHT
    step_quota: int = DEFAULT_STEP_QUOTA

    @property
    def belt_speed_ms(self) -> float:
        return speed_to_ms(self.belt_speed, self.speed_unit)

    @property
    def max_refractory_gap_ms(self) -> float:
        """Minimum gap between two detected maxima on one foot, accepted or not."""
        return max(MIN_REFRACTORY_MS, self.min_strike_ms * 0.5)

    def normalized(self) -> "EngineConfig":
        """Copy with every field clamped into its domain."""
        unit = self.speed_unit if self.speed_unit in SPEED_UNITS else "ms"
        vis = _finite_or(self.vis_thresh, DEFAULT_VIS_THRESH)
        min_strike = _finite_or(self.min_strike_ms, DEFAULT_MIN_STRIKE_MS)
        smooth = int(round(_finite_or(self.smoothing_window, DEFAULT_SMOOTHING_WINDOW)))
        tol = self.ground_tolerance_px
        if tol is not None:
            tol = clamp(
                _finite_or(tol, DEFAULT_GROUND_TOLERANCE_PX),
                GROUND_TOLERANCE_MIN_PX,
                GROUND_TOLERANCE_MAX_PX,
            )
        height = int(_finite_or(self.frame_height, DEFAULT_FRAME_HEIGHT))
        quota = int(_finite_or(self.step_quota, DEFAULT_STEP_QUOTA))
        return replace(
            self,
            belt_speed=speed_to_ms(self.belt_speed, unit),
            speed_unit="ms",
            vis_thresh=clamp(vis, 0.0, 1.0),
            min_strike_ms=max(MIN_REFRACTORY_MS, min_strike),
            smoothing_window=int(clamp(smooth, 1, SMOOTHING_WINDOW_MAX)),
            ground_tolerance_px=tol,
            frame_height=height if height > 0 else DEFAULT_FRAME_HEIGHT,
            step_quota=max(1, quota),
        )

    @classmethod
    def from_env(cls, ground_gate: bool = True, **overrides) -> "EngineConfig":
        """
        Defaults from GAIT_* environment variables; keyword overrides win.
        Overrides given as None are ignored. Unparseable values fall back to
        the built-in default. ground_gate=False turns off ground-proximity
        gating whatever the tolerance.
        """
        values: dict = {
            "belt_speed": _env_float("GAIT_BELT_SPEED", 0.0),
            "speed_unit": os.getenv("GAIT_SPEED_UNIT", "ms").strip().lower() or "ms",
            "vis_thresh": _env_float("GAIT_VIS_THRESH", DEFAULT_VIS_THRESH),
            "min_strike_ms": _env_float("GAIT_MIN_STRIKE_MS", DEFAULT_MIN_STRIKE_MS),
            "smoothing_window": _env_float("GAIT_SMOOTH_N", DEFAULT_SMOOTHING_WINDOW),
        }
        tol_raw = os.getenv("GAIT_GROUND_TOL_PX")
        if tol_raw is not None:
            tol_raw = tol_raw.strip().lower()
            if tol_raw in ("", "off", "none", "0"):
                values["ground_tolerance_px"] = None
            else:
                values["ground_tolerance_px"] = _env_float("GAIT_GROUND_TOL_PX", DEFAULT_GROUND_TOLERANCE_PX)
        values.update({k: v for k, v in overrides.items() if v is not None})
        if not ground_gate:
            values["ground_tolerance_px"] = None
        return cls(**values).normalized()


def _finite_or(value, default: float) -> float:
    try:
        v = float(value)
    except (TypeError, ValueError):
        return float(default)
    return v if math.isfinite(v) else float(default)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return float(default)
    try:
        v = float(raw)
    except ValueError:
        logger.warning("config: ignoring %s=%r (not a number)", name, raw)
        return float(default)
    if not math.isfinite(v):
        logger.warning("config: ignoring %s=%r (not finite)", name, raw)
        return float(default)
    return v
