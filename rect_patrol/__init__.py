"""Rectangular inspection patrol controller for PX4 vehicles (MAVSDK offboard)."""

__version__ = "0.1.0"
