import asyncio
import csv
import logging
import time
from pathlib import Path
from typing import Union

from .shared_state import VehicleState

logger = logging.getLogger(__name__)

CSV_HEADER = [
    "t",
    "north_m", "east_m", "down_m",
    "voltage_v",
    "in_air",
    "flight_mode",
    "phase",
]


def _fmt(value) -> str:
    if value is None:
        return ""
    return f"{value:.3f}"


def snapshot_row(state: VehicleState, t: float) -> list:
    mode = state.flight_mode
    mode_str = "" if mode is None else getattr(mode, "name", str(mode))

    return [
        f"{t:.3f}",
        _fmt(state.north_m), _fmt(state.east_m), _fmt(state.down_m),
        _fmt(state.voltage_v),
        int(state.in_air),
        mode_str,
        state.phase,
    ]


async def log_telemetry_csv(
    state: VehicleState,
    filename: str,
    logs_dir: Union[str, Path] = "logs",
    period_s: float = 0.1,
):
    """
    Logs the vehicle snapshot to a CSV file inside `logs_dir` until
    `state.running` is cleared.

    Rows are only written once a position has been received.
    """
    logs_dir = Path(logs_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_path = logs_dir / filename

    logger.info("Telemetry logger started -> %s", log_path)

    with open(log_path, "w", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(CSV_HEADER)

        t0 = time.time()

        while state.running:
            if state.down_m is not None:
                writer.writerow(snapshot_row(state, time.time() - t0))

            await asyncio.sleep(period_s)

    return log_path
