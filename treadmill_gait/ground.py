"""
Ground-line estimate from heel landmarks.
Continuous mode keeps an EMA of the lowest visible heel; an explicit calibration
window replaces it with a high percentile of the collected samples and freezes it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)

# EMA weight of a new heel sample in continuous mode.
GROUND_EMA_ALPHA = 0.10
CALIBRATION_WINDOW_MS = 1000.0
CALIBRATION_MIN_SAMPLES = 10
# Percentile of heel y taken as the floor (robust "lowest point reached").
CALIBRATION_PERCENTILE = 90.0


class CalibrationError(Exception):
    """Calibration window closed without enough heel samples."""

    def __init__(self, n_samples: int, required: int = CALIBRATION_MIN_SAMPLES):
        super().__init__(f"ground calibration needs {required} heel samples, got {n_samples}")
        self.n_samples = n_samples
        self.required = required


@dataclass
class GroundEstimate:
    y: Optional[float] = None
    calibrated: bool = False


class GroundCalibrator:
    def __init__(self) -> None:
        self.estimate = GroundEstimate()
        self._samples: list[float] = []
        self._window_start_ms: Optional[float] = None

    def reset(self) -> None:
        self.estimate = GroundEstimate()
        self._samples.clear()
        self._window_start_ms = None

    @property
    def calibrating(self) -> bool:
        return self._window_start_ms is not None

    @property
    def n_samples(self) -> int:
        return len(self._samples)

    def update(self, heel_y: Optional[float]) -> None:
        """Continuous EMA update; no-op once calibrated or without a heel sample."""
        if heel_y is None or self.estimate.calibrated:
            return
        if self.estimate.y is None:
            self.estimate.y = float(heel_y)
        else:
            self.estimate.y = (1.0 - GROUND_EMA_ALPHA) * self.estimate.y + GROUND_EMA_ALPHA * float(heel_y)

    def begin_calibration(self, t_ms: float) -> None:
        self._samples.clear()
        self._window_start_ms = float(t_ms)
        logger.info("ground: calibration window opened at t=%.0fms", t_ms)

    def cancel_calibration(self) -> None:
        if self.calibrating:
            logger.info("ground: calibration cancelled (%s samples dropped)", len(self._samples))
        self._samples.clear()
        self._window_start_ms = None

    def window_elapsed(self, t_ms: float) -> bool:
        return self.calibrating and (t_ms - self._window_start_ms) >= CALIBRATION_WINDOW_MS

    def add_sample(self, heel_y: Optional[float]) -> None:
        if self.calibrating and heel_y is not None:
            self._samples.append(float(heel_y))

    def finish_calibration(self) -> float:
        """
        Close the window and freeze the estimate.
        Raises CalibrationError (keeping the prior estimate) with too few samples.
        """
        samples = list(self._samples)
        self._samples.clear()
        self._window_start_ms = None
        return self.calibrate_from_samples(samples)

    def calibrate_from_samples(self, samples: list[float]) -> float:
        if len(samples) < CALIBRATION_MIN_SAMPLES:
            raise CalibrationError(len(samples))
        y = float(np.percentile(np.asarray(samples, dtype=float), CALIBRATION_PERCENTILE))
        self.estimate = GroundEstimate(y=y, calibrated=True)
        logger.info("ground: calibrated y=%.1fpx from %s samples", y, len(samples))
        return y
