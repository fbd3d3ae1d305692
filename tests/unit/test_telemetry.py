# tests/unit/test_telemetry.py
"""
Unit tests for the telemetry watchers and CSV logger.
"""

import asyncio
import csv
from types import SimpleNamespace

import pytest

from rect_patrol.utils.shared_state import VehicleState
from rect_patrol.utils.telemetry_logger import CSV_HEADER, log_telemetry_csv, snapshot_row
from rect_patrol.utils.telemetry_watchers import (
    watch_battery,
    watch_flight_mode,
    watch_health,
    watch_in_air,
    watch_position,
)

from tests.fixtures.mock_drone import stream


def posvel(north, east, down):
    return SimpleNamespace(position=SimpleNamespace(north_m=north, east_m=east, down_m=down))


class TestWatchers:

    @pytest.mark.asyncio
    async def test_position(self, drone):
        drone.telemetry.position_velocity_ned = lambda: stream(posvel(0.0, 0.0, 0.0), posvel(1.0, -2.0, -3.9))
        state = VehicleState()

        await watch_position(drone, state)

        assert (state.north_m, state.east_m, state.down_m) == (1.0, -2.0, -3.9)
        assert state.altitude_m() == pytest.approx(3.9)

    @pytest.mark.asyncio
    async def test_battery_health_in_air(self, drone):
        drone.telemetry.battery = lambda: stream(SimpleNamespace(voltage_v=11.8))
        drone.telemetry.health = lambda: stream(SimpleNamespace(is_local_position_ok=True))
        drone.telemetry.in_air = lambda: stream(True)
        state = VehicleState()

        await asyncio.gather(
            watch_battery(drone, state),
            watch_health(drone, state),
            watch_in_air(drone, state),
        )

        assert state.voltage_v == 11.8
        assert state.position_ok is True
        assert state.in_air is True

    @pytest.mark.asyncio
    async def test_watcher_stops_when_not_running(self, drone):
        modes = ["HOLD", "OFFBOARD", "POSCTL"]
        drone.telemetry.flight_mode = lambda: stream(*modes)
        state = VehicleState(running=False)

        await watch_flight_mode(drone, state)

        assert state.flight_mode == "HOLD"


class TestTelemetryLogger:

    def test_row_before_voltage_is_known(self):
        state = VehicleState(north_m=0.0, east_m=0.0, down_m=-1.25, phase="TAKEOFF")
        row = snapshot_row(state, 2.0)

        assert row == ["2.000", "0.000", "0.000", "-1.250", "", 0, "", "TAKEOFF"]
        assert len(row) == len(CSV_HEADER)

    @pytest.mark.asyncio
    async def test_writes_rows_until_stopped(self, tmp_path):
        state = VehicleState(north_m=1.0, east_m=2.0, down_m=-4.0, voltage_v=12.0, phase="TRAVERSE")

        task = asyncio.create_task(log_telemetry_csv(state, "patrol.csv", logs_dir=tmp_path, period_s=0.01))
        await asyncio.sleep(0.05)
        state.running = False
        log_path = await task

        with open(log_path, newline="") as f:
            rows = list(csv.reader(f))

        assert rows[0] == CSV_HEADER
        assert len(rows) > 1
        assert rows[1][1:5] == ["1.000", "2.000", "-4.000", "12.000"]
        assert rows[1][-1] == "TRAVERSE"
