from dataclasses import dataclass
from typing import Optional


@dataclass
class PatrolConfig:
    system_address: str = "udpin://0.0.0.0:14540"   # SITL default
    takeoff_alt_m: float = 4.0
    pattern_dim_m: float = 3.0

    # Raw MAVLink feed used only for heartbeat frames (abort listener)
    heartbeat_address: str = "udpin:0.0.0.0:14550"
    # MAVLink system id of the autopilot; None locks onto the first one heard
    target_system: Optional[int] = None

    discovery_timeout_s: float = 3.0
    telemetry_rate_hz: float = 1.0

    # Preflight
    preflight_poll_s: float = 1.0
    ground_band_m: float = 0.2

    # Takeoff
    climb_poll_s: float = 1.0
    climb_tolerance_m: float = 0.25
    settle_s: float = 5.0

    # Offboard
    offboard_attempts: int = 3
    offboard_backoff_s: float = 2.0

    # Pattern
    center_hold_s: float = 15.0
    waypoint_hold_s: float = 10.0

    # Battery
    min_voltage_v: float = 7.0
    battery_recheck_s: float = 30.0

    log_csv: Optional[str] = None

    def __post_init__(self):
        if self.takeoff_alt_m <= 0:
            raise ValueError(f"takeoff altitude must be > 0 (got {self.takeoff_alt_m})")
        if self.pattern_dim_m <= 0:
            raise ValueError(f"pattern dimension must be > 0 (got {self.pattern_dim_m})")
