"""Pure geometry helpers (no state)."""

from .vector import (
    Point,
    is_close, dist, lerp,
    angle_deg, angle_between,
    cubic_bezier, smootherstep,
    line_intersection,
    arc_center, arc_points,
)

__all__ = [
    "Point",
    "is_close", "dist", "lerp",
    "angle_deg", "angle_between",
    "cubic_bezier", "smootherstep",
    "line_intersection",
    "arc_center", "arc_points",
]
