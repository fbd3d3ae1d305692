"""
Plot a patrol CSV log (rect-patrol --log-csv NAME) over the commanded rectangle.

Usage:
    python analysis/plot_patrol_xy.py NAME DIMENSION ALTITUDE
"""

import sys
import pandas as pd
import matplotlib.pyplot as plt
from pathlib import Path

from rect_patrol.trajectories.rectangle import RectanglePattern

REPO_ROOT = Path(__file__).resolve().parents[1]
OUT_DIR = REPO_ROOT / "analysis" / "outputs"
OUT_DIR.mkdir(parents=True, exist_ok=True)

if len(sys.argv) != 4:
    print(__doc__)
    sys.exit(1)

log_name, dimension, altitude = sys.argv[1], float(sys.argv[2]), float(sys.argv[3])
CSV_PATH = REPO_ROOT / "logs" / log_name
OUT_PNG = OUT_DIR / (Path(log_name).stem + "_xy.png")

# --------------------------------------------------
# Load telemetry
# --------------------------------------------------

df = pd.read_csv(CSV_PATH)

# Only the pattern phases are of interest; takeoff wanders around the origin
flying = df[df["phase"].isin(["CENTER_HOLD", "BATTERY_CHECK", "AWAIT_OPERATOR", "TRAVERSE", "RETURN"])]
x = flying["north_m"]
y = flying["east_m"]

# --------------------------------------------------
# Commanded rectangle
# --------------------------------------------------

pattern = RectanglePattern(dimension, altitude)
route = [pattern.center()] + list(pattern.traversal()) + [pattern.center()]
x_ref = [wp.north_m for wp in route]
y_ref = [wp.east_m for wp in route]

plt.figure(figsize=(6, 6))

plt.plot(x, y, linewidth=2, label="UAV trajectory")
plt.plot(x_ref, y_ref, "--o", alpha=0.8, label="Commanded waypoints")
if len(x):
    plt.scatter(x.iloc[0], y.iloc[0], color="green", s=60, label="Start")
    plt.scatter(x.iloc[-1], y.iloc[-1], color="red", s=60, label="End")

plt.axis("equal")
plt.grid(True)
plt.xlabel("North [m]")
plt.ylabel("East [m]")
plt.title(f"Rectangle Patrol {dimension:g} m @ {altitude:g} m (PX4 + MAVSDK)")
plt.legend()

plt.savefig(OUT_PNG, dpi=200, bbox_inches="tight")
print(f"Saved plot -> {OUT_PNG}")

plt.show()
