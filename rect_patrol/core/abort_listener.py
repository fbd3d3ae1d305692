"""
Manual-takeover abort path.

A pymavlink reader thread receives raw heartbeat frames from the vehicle and
fans them out to subscribers. The AbortListener watches the PX4 custom mode
in each heartbeat; as soon as the pilot's RC switch puts the vehicle into
Position mode it sets the AbortSignal, which the control loop observes at
its next suspension point or setpoint.
"""

import asyncio
import logging
import threading
from collections import defaultdict
from enum import IntEnum
from typing import Callable, Dict, List, Optional

from pymavlink import mavutil

from .errors import ConnectionFailed

logger = logging.getLogger(__name__)


class Px4CustomMode(IntEnum):
    """PX4 main modes as packed into HEARTBEAT.custom_mode (main mode << 16)."""
    MANUAL = 1 << 16
    ALTCTL = 2 << 16
    POSCTL = 3 << 16
    AUTO = 4 << 16
    ACRO = 5 << 16
    OFFBOARD = 6 << 16
    STABILIZED = 7 << 16


# The mode a pilot flips to when taking the aircraft back from offboard.
MANUAL_TAKEOVER_MODE = Px4CustomMode.POSCTL


class AbortSignal:
    """
    Write-once cancellation token shared between the listener and the loop.

    `is_set` is a plain attribute read, safe from any thread. The asyncio
    event that wakes suspended waits is set on the loop thread.
    """

    def __init__(self):
        self._flag = False
        self._event = asyncio.Event()
        self.reason = ""

    @property
    def is_set(self) -> bool:
        return self._flag

    def trigger(self, reason: str = "") -> None:
        """Set the signal from the event-loop thread. Later calls are ignored."""
        if not self._flag:
            self._flag = True
            self.reason = reason
        self._event.set()

    def trigger_threadsafe(self, loop: asyncio.AbstractEventLoop, reason: str = "") -> None:
        if self._flag:
            return
        self._flag = True
        self.reason = reason
        loop.call_soon_threadsafe(self._event.set)

    async def wait(self) -> None:
        await self._event.wait()


class HeartbeatListener:
    """
    Message subscription provider backed by a pymavlink connection.

    Transport errors are logged and the reader keeps going; after
    `max_link_errors` consecutive failures the link is declared lost and
    `on_link_lost` is called from the reader thread.
    """

    def __init__(
        self,
        address: str,
        recv_timeout_s: float = 0.5,
        max_link_errors: int = 10,
        on_link_lost: Optional[Callable[[str], None]] = None,
    ):
        self.address = address
        self.recv_timeout_s = recv_timeout_s
        self.max_link_errors = max_link_errors
        self.on_link_lost = on_link_lost
        self._subscribers: Dict[str, List[Callable]] = defaultdict(list)
        self._conn = None
        self._thread: Optional[threading.Thread] = None
        self._stop = threading.Event()

    @property
    def alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def subscribe(self, message_type: str, callback: Callable) -> None:
        self._subscribers[message_type].append(callback)

    def dispatch(self, msg) -> None:
        for callback in list(self._subscribers.get(msg.get_type(), ())):
            try:
                callback(msg)
            except Exception:
                logger.exception("Subscriber %r failed on %s", callback, msg.get_type())

    def start(self) -> None:
        try:
            self._conn = mavutil.mavlink_connection(self.address)
        except OSError as e:
            raise ConnectionFailed(f"Cannot open heartbeat link {self.address}: {e}") from e
        self._thread = threading.Thread(target=self._run, name="heartbeat-listener", daemon=True)
        self._thread.start()
        logger.info("Listening for heartbeats on %s", self.address)

    def _run(self) -> None:
        errors = 0
        while not self._stop.is_set():
            types = list(self._subscribers) or None
            try:
                msg = self._conn.recv_match(type=types, blocking=True, timeout=self.recv_timeout_s)
            except Exception:
                errors += 1
                logger.exception("Heartbeat link error on %s (%d/%d)", self.address, errors, self.max_link_errors)
                if errors >= self.max_link_errors:
                    self._link_lost()
                    return
                self._stop.wait(self.recv_timeout_s)
                continue

            errors = 0
            if msg is not None:
                self.dispatch(msg)

    def _link_lost(self) -> None:
        reason = f"heartbeat link {self.address} lost"
        logger.critical("%s, manual takeover can no longer be detected", reason)
        if self.on_link_lost is not None:
            self.on_link_lost(reason)

    def close(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=2 * self.recv_timeout_s)
        if self._conn is not None:
            self._conn.close()


class AbortListener:
    """
    Watches one autopilot's heartbeats for the manual-takeover mode.

    When `target_system` is not given, the listener locks onto the system id
    of the first autopilot heartbeat it sees; heartbeats from other systems
    are ignored from then on.
    """

    def __init__(
        self,
        signal: AbortSignal,
        loop: asyncio.AbstractEventLoop,
        sentinel: int = MANUAL_TAKEOVER_MODE,
        target_system: Optional[int] = None,
    ):
        self.signal = signal
        self.loop = loop
        self.sentinel = sentinel
        self.target_system = target_system

    def attach(self, messages: HeartbeatListener) -> None:
        messages.subscribe("HEARTBEAT", self.on_heartbeat)
        messages.on_link_lost = self.on_link_lost

    def on_link_lost(self, reason: str) -> None:
        self.signal.trigger_threadsafe(self.loop, reason=reason)

    def on_heartbeat(self, msg) -> None:
        # GCSs and companion computers on the link report their own custom_mode
        if msg.type == mavutil.mavlink.MAV_TYPE_GCS:
            return
        if msg.get_srcComponent() != mavutil.mavlink.MAV_COMP_ID_AUTOPILOT1:
            return

        if self.target_system is None:
            self.target_system = msg.get_srcSystem()
            logger.info("Watching autopilot system %d for manual takeover", self.target_system)
        elif msg.get_srcSystem() != self.target_system:
            return

        if msg.custom_mode == self.sentinel and not self.signal.is_set:
            logger.critical("MANUAL TAKEOVER detected (custom_mode=%d), aborting", msg.custom_mode)
            self.signal.trigger_threadsafe(self.loop, reason="manual takeover")
