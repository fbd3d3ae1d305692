import logging

from ..utils.shared_state import VehicleState
from .errors import PreflightAbort
from .pacing import Pacer

logger = logging.getLogger(__name__)


async def wait_preflight(
    state: VehicleState,
    pacer: Pacer,
    *,
    band_m: float = 0.2,
    poll_s: float = 1.0,
) -> None:
    """
    Block until the vehicle reports a local position lock, then make sure it
    is sitting at its launch point (down within +/- band_m).

    There is no timeout on the lock: it is a physical precondition.
    """
    while not state.position_ok or state.down_m is None:
        logger.info("Vehicle is getting ready to arm, poor position lock")
        await pacer.hold(poll_s)

    logger.info("Local position valid")

    down = state.down_m
    if down < -band_m or down > band_m:
        raise PreflightAbort(
            f"Current local altitude {down:.2f} m is out of safe takeoff range "
            f"(-{band_m} to {band_m} m). Reboot aircraft at launch location "
            f"and do not move it before takeoff."
        )

    logger.info("Current altitude is within safe takeoff range, proceeding")
