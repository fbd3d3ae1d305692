"""
Rectangular Inspection Patrol Mission

Takes an armable PX4 vehicle through preflight checks, takeoff and offboard
negotiation, then flies a rectangle around the launch point forever:

    centre (15 s) -> battery check -> operator Enter ->
    W1 -> W2 -> W3 -> W4 -> W5 -> W1 (10 s each) -> centre -> ...

If the pilot switches the vehicle to Position mode on the RC, the heartbeat
listener sets the abort signal and the mission returns CANCELLED without
stopping offboard or landing; the pilot has the aircraft.
"""

import argparse
import asyncio
import logging
import math
import sys
from contextlib import suppress
from enum import Enum
from typing import Awaitable, Callable, List, Optional

from mavsdk import System

# ---- Core infrastructure ----
from ..core.config import PatrolConfig
from ..core.errors import MissionCancelled, PatrolError
from ..core.px4_connection import connect_px4, set_telemetry_rate
from ..core.preflight import wait_preflight
from ..core.takeoff import takeoff_and_climb
from ..core.offboard_helpers import OffboardSession, negotiate_offboard, send_position
from ..core.battery_guard import hold_for_battery
from ..core.abort_listener import AbortListener, AbortSignal, HeartbeatListener
from ..core.pacing import Pacer

# ---- Telemetry & state ----
from ..utils.shared_state import VehicleState
from ..utils.telemetry_watchers import WATCHERS
from ..utils.telemetry_logger import log_telemetry_csv
from ..utils.logging_setup import build_logger

# ---- Trajectory ----
from ..trajectories.rectangle import RectanglePattern, Waypoint

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_MANUAL_TAKEOVER = 3

USAGE = (
    "Connection URL format should be: udpin://0.0.0.0:14540 "
    "[Takeoff Altitude in meters, example: 4.0] "
    "[Pattern Dimensions in meters, example: 3.0]"
)


class MissionOutcome(Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# ============================================================
# Mission state machine
# ============================================================

class PatrolMission:
    def __init__(
        self,
        drone: System,
        state: VehicleState,
        cfg: PatrolConfig,
        abort: AbortSignal,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        readline: Callable[[str], str] = input,
    ):
        self.drone = drone
        self.state = state
        self.cfg = cfg
        self.abort = abort
        self.pacer = Pacer(abort, sleep=sleep, readline=readline)
        self.session = OffboardSession(retries_left=cfg.offboard_attempts)
        self.cycles = 0

    async def run(self) -> MissionOutcome:
        try:
            self.state.phase = "PREFLIGHT"
            await wait_preflight(
                self.state, self.pacer,
                band_m=self.cfg.ground_band_m,
                poll_s=self.cfg.preflight_poll_s,
            )

            self.state.phase = "TAKEOFF"
            await takeoff_and_climb(
                self.drone, self.state, self.pacer, self.cfg.takeoff_alt_m,
                tolerance_m=self.cfg.climb_tolerance_m,
                poll_s=self.cfg.climb_poll_s,
                settle_s=self.cfg.settle_s,
            )

            self.state.phase = "OFFBOARD"
            await negotiate_offboard(
                self.drone, self.session, self.pacer,
                attempts=self.cfg.offboard_attempts,
                backoff_s=self.cfg.offboard_backoff_s,
            )

            await self.fly_pattern()

        except MissionCancelled as e:
            self.state.phase = "ABORTED"
            logger.critical("Mission cancelled: %s", e.reason or "abort signal")
            return MissionOutcome.CANCELLED

        return MissionOutcome.COMPLETED

    async def fly_pattern(self):
        logger.info("Flying the %.1f meter rectangle pattern...", self.cfg.pattern_dim_m)

        while True:
            pattern = RectanglePattern(self.cfg.pattern_dim_m, self.cfg.takeoff_alt_m)
            await self.fly_cycle(pattern)
            self.cycles += 1

    async def fly_cycle(self, pattern: RectanglePattern):
        self.state.phase = "CENTER_HOLD"
        logger.info("Holding over RX...")
        await self._goto(pattern.center())
        await self.pacer.hold(self.cfg.center_hold_s)

        self.state.phase = "BATTERY_CHECK"
        await hold_for_battery(
            lambda: self.state.voltage_v, self.pacer,
            min_voltage_v=self.cfg.min_voltage_v,
            recheck_s=self.cfg.battery_recheck_s,
        )

        self.state.phase = "AWAIT_OPERATOR"
        await self.pacer.prompt("Aircraft is ready to perform flight pattern... Please press Enter\n")

        self.state.phase = "TRAVERSE"
        for i, waypoint in enumerate(pattern.traversal(), start=1):
            logger.info("Heading to position %d...", i)
            await self._goto(waypoint)
            await self.pacer.hold(self.cfg.waypoint_hold_s)

        self.state.phase = "RETURN"
        logger.info("Heading back to RX...")
        await self._goto(pattern.center())

    async def _goto(self, waypoint: Waypoint):
        self.pacer.check()
        await send_position(self.drone, self.session, waypoint)


# ============================================================
# Harness
# ============================================================

async def cancel_and_await(tasks):
    """Cancel tasks and await them to avoid warnings/unfinished coroutines."""
    for t in tasks:
        t.cancel()
    for t in tasks:
        with suppress(asyncio.CancelledError):
            await t


async def run_patrol(cfg: PatrolConfig) -> MissionOutcome:
    drone = await connect_px4(cfg.system_address, cfg.discovery_timeout_s)
    await set_telemetry_rate(drone, cfg.telemetry_rate_hz)

    state = VehicleState()
    background: List[asyncio.Task] = [
        asyncio.create_task(watch(drone, state)) for watch in WATCHERS
    ]

    task_logger: Optional[asyncio.Task] = None
    if cfg.log_csv:
        task_logger = asyncio.create_task(log_telemetry_csv(state, cfg.log_csv))

    abort = AbortSignal()
    heartbeats = HeartbeatListener(cfg.heartbeat_address)
    AbortListener(abort, asyncio.get_running_loop(), target_system=cfg.target_system).attach(heartbeats)

    try:
        heartbeats.start()
        return await PatrolMission(drone, state, cfg, abort).run()
    finally:
        state.running = False
        heartbeats.close()
        if task_logger is not None:
            await cancel_and_await([task_logger])
        await cancel_and_await(background)


# ============================================================
# CLI
# ============================================================

class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_FAILURE, f"{self.prog}: error: {message}\n{USAGE}\n")


def positive_float(text: str) -> float:
    try:
        value = float(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid floating-point value: {text!r}")
    if not math.isfinite(value):
        raise argparse.ArgumentTypeError(f"floating-point value out of range: {text!r}")
    if value <= 0:
        raise argparse.ArgumentTypeError(f"value must be > 0: {text!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    p = _ArgumentParser(prog="rect-patrol", description="Rectangular inspection patrol for PX4 (offboard)")
    p.add_argument("address", help="MAVSDK connection URL, e.g. udpin://0.0.0.0:14540")
    p.add_argument("altitude", type=positive_float, help="Takeoff altitude in meters (> 0)")
    p.add_argument("dimension", type=positive_float, help="Pattern dimension in meters (> 0)")
    p.add_argument("--heartbeat-address", default=PatrolConfig.heartbeat_address,
                   help="pymavlink address for raw heartbeats (default %(default)s)")
    p.add_argument("--target-system", type=int, default=None,
                   help="MAVLink system id of the autopilot (default: first one heard)")
    p.add_argument("--discovery-timeout", type=positive_float, default=PatrolConfig.discovery_timeout_s,
                   help="Seconds to wait for the vehicle (default %(default)s)")
    p.add_argument("--log-csv", default=None, metavar="NAME", help="Write telemetry CSV to logs/NAME")
    p.add_argument("-v", "--verbose", action="store_true", help="Verbose logs")
    p.add_argument("-q", "--quiet", action="store_true", help="Quiet logs (warnings only)")
    return p


def config_from_args(args: argparse.Namespace) -> PatrolConfig:
    return PatrolConfig(
        system_address=args.address,
        takeoff_alt_m=args.altitude,
        pattern_dim_m=args.dimension,
        heartbeat_address=args.heartbeat_address,
        target_system=args.target_system,
        discovery_timeout_s=args.discovery_timeout,
        log_csv=args.log_csv,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    build_logger(args.verbose, args.quiet)
    cfg = config_from_args(args)

    try:
        outcome = asyncio.run(run_patrol(cfg))
    except PatrolError as e:
        logger.error("%s", e)
        return EXIT_FAILURE

    if outcome is MissionOutcome.CANCELLED:
        logger.critical("Pilot has control. Exiting without landing.")
        return EXIT_MANUAL_TAKEOVER

    return EXIT_OK


def cli():
    sys.exit(main())


if __name__ == "__main__":
    cli()
