"""
Gait analysis session: one context object owning every piece of per-session
state, plus the timed Idle -> Warm-up -> Countdown -> Analyzing lifecycle.

The host calls process_frame(frame, t_ms) once per pose result (frame may be
None when no person was detected) and tick(t_ms) when it wants the timed
states to advance without a frame. Timestamps must be non-decreasing.
"""
from __future__ import annotations

import enum
import logging
import math
from typing import Any, Optional

from .config import EngineConfig
from .ground import CalibrationError, GroundCalibrator
from .landmarks import SIDES, Facing, LandmarkFrame, estimate_facing, foot_y, lowest_heel_y, side_name
from .metrics import GaitRow, MetricsCalculator, StrikeEvent
from .quality import QualityMonitor
from .strikes import FootChannel, StrikeDetector

logger = logging.getLogger(__name__)

WARM_UP_MS = 10_000.0
COUNTDOWN_MS = 5_000.0


class SessionState(str, enum.Enum):
    IDLE = "idle"
    WARM_UP = "warm_up"
    COUNTDOWN = "countdown"
    ANALYZING = "analyzing"


class GaitEngine:
    """
    Frame-driven gait event engine.
    Frames during WARM_UP and COUNTDOWN update facing, ground and quality only;
    strikes are detected only while ANALYZING. stop() never discards rows.
    """

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        self.config = (config or EngineConfig()).normalized()
        self.channels = {side: FootChannel(side) for side in SIDES}
        self.detector = StrikeDetector(self.config)
        self.metrics = MetricsCalculator(self.config.belt_speed_ms, self.config.step_quota)
        self.ground = GroundCalibrator()
        self.quality = QualityMonitor()
        self.reset()

    # -------------------------
    # Lifecycle
    # -------------------------
    def reset(self) -> None:
        """Zero every counter and history and return to IDLE."""
        for ch in self.channels.values():
            ch.reset()
        self.metrics.reset()
        self.ground.reset()
        self.quality.reset()
        self.state = SessionState.IDLE
        self._state_since_ms: Optional[float] = None
        self._last_t_ms: Optional[float] = None
        self.facing: Optional[Facing] = None
        self.calibration_status: Optional[str] = None
        self.stop_reason: Optional[str] = None

    def start(self, t_ms: float, warm_up: bool = True) -> None:
        self.reset()
        self._last_t_ms = float(t_ms)
        if warm_up:
            self._enter(SessionState.WARM_UP, t_ms)
        else:
            self._enter(SessionState.ANALYZING, t_ms)

    def stop(self, reason: str = "stopped") -> None:
        if self.state is SessionState.IDLE:
            return
        self.ground.cancel_calibration()
        if self.calibration_status == "collecting":
            self.calibration_status = None
        logger.info(
            "session: %s -> idle (%s, steps=%s rows=%s)",
            self.state.value, reason, self.metrics.step_count, len(self.metrics.rows),
        )
        self.state = SessionState.IDLE
        self._state_since_ms = None
        self.stop_reason = reason

    def begin_calibration(self, t_ms: float) -> bool:
        """Open the explicit ground-calibration window; ignored while IDLE."""
        if self.state is SessionState.IDLE:
            return False
        self.ground.begin_calibration(t_ms)
        self.calibration_status = "collecting"
        return True

    def _enter(self, state: SessionState, t_ms: float) -> None:
        logger.info("session: %s -> %s at t=%.0fms", self.state.value, state.value, t_ms)
        self.state = state
        self._state_since_ms = float(t_ms)
        self.stop_reason = None

    def _clear_detection(self) -> None:
        for ch in self.channels.values():
            ch.reset()
        self.metrics.reset()

    def tick(self, t_ms: float) -> SessionState:
        """Advance timed states; at most one transition per boundary crossed."""
        self._last_t_ms = float(t_ms)
        if self.state is SessionState.WARM_UP and t_ms - self._state_since_ms >= WARM_UP_MS:
            self._enter(SessionState.COUNTDOWN, self._state_since_ms + WARM_UP_MS)
        if self.state is SessionState.COUNTDOWN and t_ms - self._state_since_ms >= COUNTDOWN_MS:
            self._clear_detection()
            self._enter(SessionState.ANALYZING, self._state_since_ms + COUNTDOWN_MS)
        return self.state

    # -------------------------
    # Per-frame processing
    # -------------------------
    def process_frame(self, frame: Optional[LandmarkFrame], t_ms: float) -> dict[str, Any]:
        """Process one pose result synchronously and return the status snapshot."""
        if self.state is SessionState.IDLE:
            return self.status()
        self.tick(t_ms)
        cfg = self.config

        if not frame:
            self.quality.update(False)
            self.facing = None
            return self.status()

        readings = {
            side: foot_y(frame, side, cfg.vis_thresh, cfg.frame_height)
            for side in SIDES
        }
        self.quality.update(all(r.ok for r in readings.values()))
        self.facing = estimate_facing(frame)
        self._update_ground(frame, t_ms)

        if self.state is SessionState.ANALYZING:
            for side in SIDES:
                if self.state is not SessionState.ANALYZING:
                    break
                if not self.detector.detect(self.channels[side], readings[side], t_ms, self.ground.estimate):
                    continue
                row = self.metrics.register(StrikeEvent(side, t_ms), self.channels)
                if row is not None and self.metrics.quota_reached:
                    self.stop("quota")
        return self.status()

    def _update_ground(self, frame: LandmarkFrame, t_ms: float) -> None:
        heel = lowest_heel_y(frame, self.config.vis_thresh, self.config.frame_height)
        if self.ground.calibrating:
            if self.ground.window_elapsed(t_ms):
                try:
                    self.ground.finish_calibration()
                    self.calibration_status = "ok"
                except CalibrationError as e:
                    logger.warning("ground: calibration failed: %s", e)
                    self.calibration_status = "failed"
            else:
                self.ground.add_sample(heel)
                return
        self.ground.update(heel)

    # -------------------------
    # Read-only views
    # -------------------------
    @property
    def rows(self) -> list[GaitRow]:
        return self.metrics.rows

    def state_label(self) -> str:
        if self.state is SessionState.IDLE:
            return "Idle"
        now = self._last_t_ms if self._last_t_ms is not None else self._state_since_ms
        elapsed = max(0.0, now - self._state_since_ms)
        if self.state is SessionState.WARM_UP:
            return f"Warm-up {int(math.ceil((WARM_UP_MS - elapsed) / 1000.0))}s"
        if self.state is SessionState.COUNTDOWN:
            return f"Starting in {max(1, int(math.ceil((COUNTDOWN_MS - elapsed) / 1000.0)))}"
        return f"Analyzing {self.metrics.step_count}/{self.metrics.step_quota}"

    def status(self) -> dict[str, Any]:
        last = self.metrics.last_side
        return {
            "state": self.state.value,
            "label": self.state_label(),
            "quality": self.quality.classification(),
            "good_frames": self.quality.good_frames,
            "total_frames": self.quality.total_frames,
            "facing": self.facing.value if self.facing is not None else None,
            "last_side": side_name(last) if last else None,
            "last_stride_freq_hz": self.metrics.last_stride_freq_hz,
            "step_count": self.metrics.step_count,
            "ground_y": self.ground.estimate.y,
            "ground_calibrated": self.ground.estimate.calibrated,
            "calibration_status": self.calibration_status,
            "stop_reason": self.stop_reason,
        }
