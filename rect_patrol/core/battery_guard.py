import logging
from typing import Callable, Optional

from .pacing import Pacer

logger = logging.getLogger(__name__)


async def hold_for_battery(
    read_voltage: Callable[[], Optional[float]],
    pacer: Pacer,
    *,
    min_voltage_v: float = 7.0,
    recheck_s: float = 30.0,
) -> int:
    """
    Keep hovering on the last commanded position until the pack voltage is
    back above `min_voltage_v`. Returns how many samples were taken.

    The offboard stream keeps re-sending the last setpoint, so holding means
    simply not issuing a new one. A missing reading counts as low.
    """
    samples = 0
    while True:
        voltage = read_voltage()
        samples += 1
        if voltage is not None and voltage >= min_voltage_v:
            return samples

        logger.warning(
            "Battery voltage too low (%s V < %.1f V), hovering to charge",
            "?" if voltage is None else f"{voltage:.2f}",
            min_voltage_v,
        )
        await pacer.hold(recheck_s)
