from dataclasses import dataclass
from typing import Optional, Any


@dataclass
class VehicleState:
    # Latest telemetry snapshots (written by telemetry_watchers only)
    north_m: Optional[float] = None
    east_m: Optional[float] = None
    down_m: Optional[float] = None          # NED, positive below launch point
    voltage_v: Optional[float] = None
    position_ok: bool = False               # local position lock
    in_air: bool = False
    flight_mode: Optional[Any] = None

    # Control flags
    running: bool = True

    # Mission marker for the CSV log
    phase: str = "INIT"

    def altitude_m(self) -> Optional[float]:
        if self.down_m is None:
            return None
        return -self.down_m
