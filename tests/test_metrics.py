from __future__ import annotations

import math

from treadmill_gait.config import EngineConfig
from treadmill_gait.metrics import GLOBAL_REFRACTORY_MS, MetricsCalculator, StrikeEvent
from treadmill_gait.session import GaitEngine, SessionState
from treadmill_gait.strikes import FootChannel
from tests.helpers import feed, tri


def _channels():
    return {"R": FootChannel("R"), "L": FootChannel("L")}


def test_first_strike_has_no_step_or_stride():
    calc = MetricsCalculator(belt_speed_ms=3.0)
    row = calc.register(StrikeEvent("R", 1000.0), _channels())
    assert row.label == "1 - Right"
    assert row.step_time_ms is None and row.stride_time_ms is None
    assert row.stride_freq_hz is None and row.stride_len_m is None


def test_step_and_stride_from_alternating_feet():
    calc = MetricsCalculator(belt_speed_ms=2.5)
    ch = _channels()
    calc.register(StrikeEvent("R", 1000.0), ch)
    left = calc.register(StrikeEvent("L", 1350.0), ch)
    right = calc.register(StrikeEvent("R", 1700.0), ch)

    assert left.label == "2 - Left"
    assert left.step_time_ms == 350.0
    assert left.step_len_m == 2.5 * 350.0 / 1000
    assert left.stride_time_ms is None

    assert right.step_time_ms == 350.0
    assert right.stride_time_ms == 700.0
    assert right.stride_len_m == 2.5 * 700.0 / 1000
    assert math.isclose(right.stride_freq_hz, 1000.0 / 700.0)
    assert calc.last_side == "R"
    assert calc.last_stride_freq_hz == right.stride_freq_hz


def test_zero_belt_speed_leaves_lengths_missing():
    calc = MetricsCalculator(belt_speed_ms=0.0)
    ch = _channels()
    for side, t in (("R", 0.0), ("L", 300.0), ("R", 600.0), ("L", 900.0)):
        calc.register(StrikeEvent(side, t), ch)
    assert all(r.step_len_m is None and r.stride_len_m is None for r in calc.rows)
    assert [r.step_time_ms for r in calc.rows[1:]] == [300.0, 300.0, 300.0]
    assert [r.stride_time_ms for r in calc.rows[2:]] == [600.0, 600.0]


def test_non_finite_belt_speed_leaves_lengths_missing():
    calc = MetricsCalculator(belt_speed_ms=float("nan"))
    ch = _channels()
    calc.register(StrikeEvent("R", 0.0), ch)
    row = calc.register(StrikeEvent("R", 500.0), ch)
    assert row.stride_time_ms == 500.0
    assert row.stride_len_m is None


def test_global_refractory_across_feet():
    calc = MetricsCalculator(belt_speed_ms=3.0)
    ch = _channels()
    assert calc.register(StrikeEvent("R", 1000.0), ch) is not None
    assert calc.register(StrikeEvent("L", 1000.0 + GLOBAL_REFRACTORY_MS - 1), ch) is None
    assert ch["L"].last_strike_ms is None
    assert calc.register(StrikeEvent("L", 1000.0 + GLOBAL_REFRACTORY_MS), ch) is not None
    assert calc.step_count == 2


def test_quota_blocks_further_rows():
    calc = MetricsCalculator(belt_speed_ms=3.0, step_quota=3)
    ch = _channels()
    for i in range(5):
        calc.register(StrikeEvent("R" if i % 2 == 0 else "L", i * 400.0), ch)
    assert calc.step_count == 3
    assert len(calc.rows) == 3
    assert calc.quota_reached


def test_same_frame_strikes_on_both_feet_count_once(engine):
    ys = [tri(i) for i in range(40)]
    feed(engine, ys, ys)
    assert [r.label for r in engine.rows] == ["1 - Right", "2 - Right"]


def test_alternating_feet_end_to_end(engine):
    n = 80
    feed(engine, [tri(i) for i in range(n)], [tri(i, shift=10) for i in range(n)])
    rows = engine.rows
    assert [r.label.split(" - ")[1] for r in rows] == ["Right", "Left", "Right", "Left", "Right", "Left", "Right"]
    times = [220.0, 420.0, 620.0, 820.0, 1020.0, 1220.0, 1420.0]
    assert [r.step_time_ms for r in rows[1:]] == [200.0] * 6
    assert [r.stride_time_ms for r in rows[2:]] == [400.0] * 5
    assert engine.channels["R"].last_strike_ms == times[-1]
    assert engine.channels["L"].last_strike_ms == times[-2]
    for r in rows:
        assert r.step_time_ms is None or r.step_time_ms >= 0
        if r.stride_time_ms is not None:
            assert r.stride_len_m == 3.0 * r.stride_time_ms / 1000


def test_step_quota_returns_session_to_idle(config):
    eng = GaitEngine(config)
    eng.start(0.0, warm_up=False)
    n = 200
    feed(eng, [tri(i) for i in range(n)], [tri(i, shift=10) for i in range(n)])
    assert eng.state is SessionState.IDLE
    assert eng.stop_reason == "quota"
    assert len(eng.rows) == 10
    assert eng.rows[-1].label == "10 - Left"

    # more qualifying frames change nothing
    feed(eng, [tri(i) for i in range(n)], [tri(i, shift=10) for i in range(n)], t0=n * 20.0)
    assert len(eng.rows) == 10


def test_zero_speed_engine_keeps_times():
    eng = GaitEngine(EngineConfig(
        belt_speed=0.0, min_strike_ms=300, smoothing_window=1, ground_tolerance_px=None,
    ))
    eng.start(0.0, warm_up=False)
    feed(eng, [tri(i) for i in range(40)])
    assert eng.rows[1].stride_time_ms == 400.0
    assert eng.rows[1].stride_len_m is None
