import logging

from mavsdk import System
from mavsdk.action import ActionError

from ..utils.shared_state import VehicleState
from .errors import ArmRejected, CommandRejected, TakeoffRejected
from .pacing import Pacer

logger = logging.getLogger(__name__)


def _result_of(e: ActionError) -> str:
    return str(e._result.result)


async def takeoff_and_climb(
    drone: System,
    state: VehicleState,
    pacer: Pacer,
    altitude_m: float,
    *,
    tolerance_m: float = 0.25,
    poll_s: float = 1.0,
    settle_s: float = 5.0,
) -> None:
    try:
        await drone.action.set_takeoff_altitude(altitude_m)
    except ActionError as e:
        raise CommandRejected(f"Failed to set takeoff altitude: {_result_of(e)}") from e
    logger.info("Takeoff altitude set to %.2f m", altitude_m)

    pacer.check()
    logger.info("Arming...")
    try:
        await drone.action.arm()
    except ActionError as e:
        raise ArmRejected(f"Arming failed: {_result_of(e)}") from e

    pacer.check()
    logger.info("Taking off...")
    try:
        await drone.action.takeoff()
    except ActionError as e:
        raise TakeoffRejected(f"Takeoff failed: {_result_of(e)}") from e

    # remaining = altitude + down, since down is negative above launch
    while state.down_m is None or altitude_m + state.down_m > tolerance_m:
        logger.info("Climbing... current altitude: %s m", _fmt_alt(state))
        await pacer.hold(poll_s)

    logger.info("Reached %.2f m, settling for %.0f s", altitude_m, settle_s)
    await pacer.hold(settle_s)


def _fmt_alt(state: VehicleState) -> str:
    alt = state.altitude_m()
    return "?" if alt is None else f"{alt:.2f}"
