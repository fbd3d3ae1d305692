# tests/conftest.py
"""
Root pytest configuration and fixtures for the patrol controller tests.
"""

import pytest

from rect_patrol.core.abort_listener import AbortSignal
from rect_patrol.core.config import PatrolConfig
from rect_patrol.core.pacing import Pacer
from rect_patrol.utils.shared_state import VehicleState

from tests.fixtures.mock_drone import FakeClock, MockDrone


@pytest.fixture
def drone():
    return MockDrone()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def abort():
    return AbortSignal()


@pytest.fixture
def pacer(abort, clock):
    """Pacer on simulated time, operator always presses Enter at once."""
    return Pacer(abort, sleep=clock.sleep, readline=lambda _msg: "")


@pytest.fixture
def ground_state():
    """Vehicle sitting on its launch point with a position lock and a full pack."""
    return VehicleState(down_m=0.0, voltage_v=12.0, position_ok=True)


@pytest.fixture
def cfg():
    return PatrolConfig(system_address="udpin://0.0.0.0:14540", takeoff_alt_m=4.0, pattern_dim_m=3.0)
