import asyncio
import logging

from mavsdk import System
from mavsdk.telemetry import TelemetryError

from .errors import CommandRejected, ConnectionFailed, DiscoveryTimeout

logger = logging.getLogger(__name__)


async def _first_connected(drone: System) -> None:
    async for state in drone.core.connection_state():
        if state.is_connected:
            return


async def connect_px4(system_address: str, discovery_timeout_s: float = 3.0) -> System:
    drone = System()
    try:
        await drone.connect(system_address=system_address)
    except (OSError, ValueError) as e:
        raise ConnectionFailed(f"Failed to connect to aircraft at {system_address}: {e}") from e

    logger.info("Waiting for drone to connect...")
    try:
        await asyncio.wait_for(_first_connected(drone), timeout=discovery_timeout_s)
    except asyncio.TimeoutError as e:
        raise DiscoveryTimeout(
            f"Timed out waiting for system after {discovery_timeout_s:.1f} s"
        ) from e

    logger.info("-- Connected!")
    return drone


async def set_telemetry_rate(drone: System, rate_hz: float) -> None:
    try:
        await drone.telemetry.set_rate_position_velocity_ned(rate_hz)
    except TelemetryError as e:
        raise CommandRejected(f"Setting telemetry rate failed: {e._result.result}") from e
