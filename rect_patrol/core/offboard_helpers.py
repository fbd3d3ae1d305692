import logging
from dataclasses import dataclass
from enum import Enum

from mavsdk import System
from mavsdk.offboard import OffboardError, PositionNedYaw, VelocityNedYaw

from ..trajectories.rectangle import Waypoint
from .errors import CommandRejected, OffboardUnavailable
from .pacing import Pacer

logger = logging.getLogger(__name__)


class OffboardState(Enum):
    INACTIVE = "inactive"
    NEGOTIATING = "negotiating"
    ACTIVE = "active"
    FAILED = "failed"


@dataclass
class OffboardSession:
    state: OffboardState = OffboardState.INACTIVE
    retries_left: int = 3
    attempts: int = 0

    @property
    def is_active(self) -> bool:
        return self.state is OffboardState.ACTIVE


async def send_neutral_setpoint(drone: System) -> bool:
    """PX4 requires a setpoint to be streaming before it grants offboard."""
    try:
        await drone.offboard.set_velocity_ned(VelocityNedYaw(0.0, 0.0, 0.0, 0.0))
        return True
    except OffboardError as e:
        logger.warning("Failed to send neutral setpoint: %s", e._result.result)
        return False


async def start_offboard(drone: System) -> bool:
    try:
        await drone.offboard.start()
        logger.info("Offboard mode successfully started")
        return True
    except OffboardError as e:
        logger.warning("Failed to enter offboard mode: %s", e._result.result)
        return False


async def negotiate_offboard(
    drone: System,
    session: OffboardSession,
    pacer: Pacer,
    *,
    attempts: int = 3,
    backoff_s: float = 2.0,
) -> OffboardSession:
    session.state = OffboardState.NEGOTIATING
    session.retries_left = attempts

    while session.retries_left > 0:
        pacer.check()
        session.attempts += 1
        logger.info("Entering offboard mode...")
        if await send_neutral_setpoint(drone) and await start_offboard(drone):
            session.state = OffboardState.ACTIVE
            return session

        logger.info("Retrying in %.0f s (%d attempts left)", backoff_s, session.retries_left - 1)
        await pacer.hold(backoff_s)
        session.retries_left -= 1

    session.state = OffboardState.FAILED
    raise OffboardUnavailable(
        f"Unable to enter offboard mode after {session.attempts} attempts"
    )


async def send_position(drone: System, session: OffboardSession, waypoint: Waypoint):
    if not session.is_active:
        raise OffboardUnavailable(f"Position setpoint refused, offboard is {session.state.value}")

    try:
        await drone.offboard.set_position_ned(
            PositionNedYaw(waypoint.north_m, waypoint.east_m, waypoint.down_m, waypoint.yaw_deg)
        )
    except OffboardError as e:
        raise CommandRejected(f"Position setpoint {tuple(waypoint)} rejected: {e._result.result}") from e
