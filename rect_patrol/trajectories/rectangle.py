"""
Rectangular inspection pattern generator.

Pure geometry for the patrol loop, expressed in the local NED frame around
the launch point. No PX4 / MAVSDK code here.
"""

from typing import NamedTuple, Tuple


class Waypoint(NamedTuple):
    north_m: float
    east_m: float
    down_m: float
    yaw_deg: float = 0.0


class RectanglePattern:
    def __init__(self, dimension: float, altitude: float):
        """
        Parameters:
            dimension : side length of the pattern in meters (> 0)
            altitude  : hold altitude above launch in meters (> 0)
        """
        if dimension <= 0:
            raise ValueError(f"dimension must be > 0 (got {dimension})")
        if altitude <= 0:
            raise ValueError(f"altitude must be > 0 (got {altitude})")

        self.d = dimension
        self.a = altitude

    @property
    def down_m(self) -> float:
        return -self.a

    def center(self) -> Waypoint:
        return Waypoint(0.0, 0.0, self.down_m)

    def corners(self) -> Tuple[Waypoint, ...]:
        """
        W1..W5:

        W1 = (-d/2,    0)
        W2 = (-d/2,  d/2)
        W3 = ( d/2,  d/2)
        W4 = ( d/2, -d/2)
        W5 = (-d/2, -d/2)
        """
        h = self.d / 2
        z = self.down_m
        return (
            Waypoint(-h, 0.0, z),
            Waypoint(-h, h, z),
            Waypoint(h, h, z),
            Waypoint(h, -h, z),
            Waypoint(-h, -h, z),
        )

    def traversal(self) -> Tuple[Waypoint, ...]:
        """
        Order flown each cycle: W1..W5, then W1 again before heading back
        to the centre.
        """
        corners = self.corners()
        return corners + (corners[0],)
