from mavsdk import System
from .shared_state import VehicleState


async def watch_position(drone: System, state: VehicleState):
    async for data in drone.telemetry.position_velocity_ned():
        pos = data.position
        state.north_m = pos.north_m
        state.east_m = pos.east_m
        state.down_m = pos.down_m

        if not state.running:
            break


async def watch_battery(drone: System, state: VehicleState):
    async for battery in drone.telemetry.battery():
        state.voltage_v = battery.voltage_v
        if not state.running:
            break


async def watch_health(drone: System, state: VehicleState):
    async for health in drone.telemetry.health():
        state.position_ok = health.is_local_position_ok
        if not state.running:
            break


async def watch_in_air(drone: System, state: VehicleState):
    async for in_air in drone.telemetry.in_air():
        state.in_air = in_air
        if not state.running:
            break


async def watch_flight_mode(drone: System, state: VehicleState):
    async for mode in drone.telemetry.flight_mode():
        state.flight_mode = mode
        if not state.running:
            break


WATCHERS = (watch_position, watch_battery, watch_health, watch_in_air, watch_flight_mode)
