# tests/unit/test_patrol_mission.py
"""
End-to-end tests of PatrolMission against a cooperative simulated vehicle.

The vehicle converges instantly (takeoff puts it straight at altitude),
reports 12.0 V, and the operator presses Enter immediately. Time is
simulated through FakeClock.
"""

import pytest

from rect_patrol.core.errors import OffboardUnavailable, PreflightAbort
from rect_patrol.core.offboard_helpers import OffboardState
from rect_patrol.missions.rectangle_patrol import MissionOutcome, PatrolMission
from rect_patrol.utils.shared_state import VehicleState

from tests.fixtures.mock_drone import offboard_error

C = (0.0, 0.0, -4.0, 0.0)
CYCLE = [
    C,
    (-1.5, 0.0, -4.0, 0.0),
    (-1.5, 1.5, -4.0, 0.0),
    (1.5, 1.5, -4.0, 0.0),
    (1.5, -1.5, -4.0, 0.0),
    (-1.5, -1.5, -4.0, 0.0),
    (-1.5, 0.0, -4.0, 0.0),
    C,
]
CYCLE_SLEEPS = [15.0] + [10.0] * 6


def make_mission(drone, state, cfg, abort, clock, readline=lambda msg: ""):
    return PatrolMission(drone, state, cfg, abort, sleep=clock.sleep, readline=readline)


@pytest.fixture
def cooperative(drone, ground_state):
    def climb():
        ground_state.down_m = -4.0

    drone.action.takeoff.side_effect = climb
    return drone


def stop_after(abort, drone, n_positions):
    def hook(point):
        if len(drone.positions) == n_positions:
            abort.trigger("test over")

    drone.on_position = hook


class TestCooperativeVehicle:

    @pytest.mark.asyncio
    async def test_setpoint_sequence_repeats(self, cooperative, ground_state, cfg, abort, clock):
        stop_after(abort, cooperative, 2 * len(CYCLE))
        mission = make_mission(cooperative, ground_state, cfg, abort, clock)

        outcome = await mission.run()

        assert outcome is MissionOutcome.CANCELLED
        assert cooperative.setpoints[0] == ("velocity", (0.0, 0.0, 0.0, 0.0))
        assert cooperative.positions == CYCLE * 2
        assert mission.cycles == 2
        assert mission.session.state is OffboardState.ACTIVE

    @pytest.mark.asyncio
    async def test_dwell_times(self, cooperative, ground_state, cfg, abort, clock):
        stop_after(abort, cooperative, 2 * len(CYCLE))

        await make_mission(cooperative, ground_state, cfg, abort, clock).run()

        # settle after climb, then 15 s centre hold and 10 s per waypoint;
        # the return to centre has no dwell of its own
        assert clock.sleeps == [5.0] + CYCLE_SLEEPS * 2

    @pytest.mark.asyncio
    async def test_operator_prompted_once_per_cycle(self, cooperative, ground_state, cfg, abort, clock):
        prompts = []
        stop_after(abort, cooperative, 3 * len(CYCLE))

        def readline(msg):
            prompts.append(len(cooperative.positions))
            return ""

        await make_mission(cooperative, ground_state, cfg, abort, clock, readline=readline).run()

        # prompt comes after the centre setpoint of each cycle, before W1
        assert prompts == [1, 9, 17]


class TestAbort:

    @pytest.mark.asyncio
    async def test_takeover_during_traversal_stops_setpoints(self, cooperative, ground_state, cfg, abort, clock):
        # takeover arrives right after W3 is commanded
        stop_after(abort, cooperative, 4)

        outcome = await make_mission(cooperative, ground_state, cfg, abort, clock).run()

        assert outcome is MissionOutcome.CANCELLED
        assert cooperative.positions == CYCLE[:4]
        assert ground_state.phase == "ABORTED"
        # no graceful exit: offboard stays on, no landing
        cooperative.offboard.stop.assert_not_awaited()
        cooperative.action.land.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_takeover_while_waiting_for_lock(self, drone, cfg, abort, clock):
        state = VehicleState(down_m=0.0, position_ok=False)
        clock.on_sleep = lambda n: n == 10 and abort.trigger("manual takeover")

        outcome = await make_mission(drone, state, cfg, abort, clock).run()

        assert outcome is MissionOutcome.CANCELLED
        drone.action.arm.assert_not_awaited()
        assert drone.setpoints == []


class TestBatteryHold:

    @pytest.mark.asyncio
    async def test_low_battery_delays_traversal(self, cooperative, ground_state, cfg, abort, clock):
        # pack reads 6.5 V at the gate, then 6.9 V and 7.1 V after each 30 s hold
        ground_state.voltage_v = 6.5
        readings = iter([6.9, 7.1])

        def recharge(n):
            if clock.sleeps[-1] == 30.0:
                ground_state.voltage_v = next(readings)

        clock.on_sleep = recharge
        stop_after(abort, cooperative, len(CYCLE))

        await make_mission(cooperative, ground_state, cfg, abort, clock).run()

        assert clock.sleeps[:4] == [5.0, 15.0, 30.0, 30.0]
        assert clock.sleeps[4:] == [10.0] * 6
        assert cooperative.positions == CYCLE


class TestSetupFailures:

    @pytest.mark.asyncio
    async def test_unsafe_ground_altitude(self, drone, cfg, abort, clock):
        state = VehicleState(down_m=0.3, position_ok=True)

        with pytest.raises(PreflightAbort):
            await make_mission(drone, state, cfg, abort, clock).run()

        drone.action.arm.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_offboard_exhaustion(self, cooperative, ground_state, cfg, abort, clock):
        cooperative.offboard.start.side_effect = offboard_error()
        mission = make_mission(cooperative, ground_state, cfg, abort, clock)

        with pytest.raises(OffboardUnavailable):
            await mission.run()

        assert mission.session.state is OffboardState.FAILED
        assert cooperative.positions == []
