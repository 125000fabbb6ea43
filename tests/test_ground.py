from __future__ import annotations

import pytest

from treadmill_gait.config import EngineConfig
from treadmill_gait.ground import CalibrationError, GroundCalibrator
from treadmill_gait.session import GaitEngine
from tests.helpers import make_frame


def test_continuous_estimate_is_ema_of_heel():
    g = GroundCalibrator()
    g.update(None)
    assert g.estimate.y is None
    g.update(500.0)
    assert g.estimate.y == 500.0
    g.update(600.0)
    assert g.estimate.y == pytest.approx(510.0)
    assert g.estimate.calibrated is False


def test_calibration_with_enough_samples():
    g = GroundCalibrator()
    samples = [498.0, 499.0, 500.0, 501.0, 502.0, 500.0, 499.5, 500.5, 501.5, 498.5, 500.0, 502.0]
    y = g.calibrate_from_samples(samples)
    assert abs(y - 500.0) <= 2.0
    assert g.estimate.calibrated is True


def test_calibration_with_too_few_samples_keeps_prior():
    g = GroundCalibrator()
    g.update(480.0)
    with pytest.raises(CalibrationError) as exc:
        g.calibrate_from_samples([500.0] * 5)
    assert exc.value.n_samples == 5
    assert g.estimate.calibrated is False
    assert g.estimate.y == 480.0


def test_calibrated_estimate_is_frozen():
    g = GroundCalibrator()
    g.calibrate_from_samples([500.0] * 10)
    g.update(700.0)
    assert g.estimate.y == 500.0


def test_window_collects_for_one_second():
    g = GroundCalibrator()
    g.begin_calibration(1000.0)
    assert g.calibrating
    assert not g.window_elapsed(1999.0)
    assert g.window_elapsed(2000.0)
    g.add_sample(500.0)
    g.add_sample(None)
    assert g.n_samples == 1
    g.cancel_calibration()
    assert not g.calibrating and g.n_samples == 0


def _engine():
    eng = GaitEngine(EngineConfig(ground_tolerance_px=18))
    eng.start(0.0, warm_up=True)
    return eng


def test_engine_calibration_window():
    eng = _engine()
    eng.begin_calibration(0.0)
    for i in range(12):
        y = 500.0 + (1.5 if i % 2 else -1.5)
        eng.process_frame(make_frame(right_y=y, left_y=y), i * 50.0)
    assert eng.calibration_status == "collecting"
    status = eng.process_frame(make_frame(right_y=500.0, left_y=500.0), 1000.0)
    assert status["calibration_status"] == "ok"
    assert status["ground_calibrated"] is True
    assert abs(status["ground_y"] - 500.0) <= 2.0


def test_engine_calibration_failure_is_recoverable():
    eng = _engine()
    for i in range(3):
        eng.process_frame(make_frame(right_y=480.0, left_y=480.0), i * 50.0)
    prior = eng.ground.estimate.y
    eng.begin_calibration(200.0)
    for i in range(5):
        eng.process_frame(make_frame(right_y=500.0, left_y=500.0), 200.0 + i * 150.0)
    status = eng.process_frame(make_frame(right_y=500.0, left_y=500.0), 1300.0)
    assert status["calibration_status"] == "failed"
    assert status["ground_calibrated"] is False
    # continuous mode resumes from the prior estimate
    assert eng.ground.estimate.y == pytest.approx(0.9 * prior + 0.1 * 500.0)


def test_calibration_requires_active_session():
    eng = GaitEngine()
    assert eng.begin_calibration(0.0) is False
    assert eng.calibration_status is None
