from __future__ import annotations

import pytest

from tests.helpers import FRAME_HEIGHT
from treadmill_gait.config import EngineConfig
from treadmill_gait.session import GaitEngine


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig(
        belt_speed=3.0,
        min_strike_ms=300,
        smoothing_window=1,
        ground_tolerance_px=None,
        frame_height=FRAME_HEIGHT,
    )


@pytest.fixture
def engine(config: EngineConfig) -> GaitEngine:
    eng = GaitEngine(config)
    eng.start(0.0, warm_up=False)
    return eng
