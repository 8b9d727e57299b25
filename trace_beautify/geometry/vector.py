"""
Pure-Python 2-D vector geometry.

All coordinates are in the host's native unit.  Angles returned in
degrees unless the name says otherwise; positive = counter-clockwise.
"""

from __future__ import annotations

import math
from typing import NamedTuple


class Point(NamedTuple):
    x: float
    y: float


# ── scalar helpers ──────────────────────────────────────────────────


def is_close(a: float, b: float, eps: float = 0.001) -> bool:
    """True if *a* and *b* differ by less than *eps*."""
    return abs(a - b) < eps


def dist(p1: Point, p2: Point) -> float:
    return math.hypot(p1[0] - p2[0], p1[1] - p2[1])


def lerp(p1: Point, p2: Point, t: float) -> Point:
    """Linear interpolation from *p1* (t=0) to *p2* (t=1)."""
    return Point(
        p1[0] + (p2[0] - p1[0]) * t,
        p1[1] + (p2[1] - p1[1]) * t,
    )


# ── angles ──────────────────────────────────────────────────────────


def angle_deg(p1: Point, p2: Point) -> float:
    """Direction of p1→p2 in degrees, (-180, 180]."""
    return math.degrees(math.atan2(p2[1] - p1[1], p2[0] - p1[0]))


def angle_between(v1: Point, v2: Point) -> float:
    """Signed rotation from vector *v1* to vector *v2*, in (-180, 180]."""
    angle = math.degrees(math.atan2(v2[1], v2[0]) - math.atan2(v1[1], v1[0]))
    while angle <= -180:
        angle += 360
    while angle > 180:
        angle -= 360
    return angle


# ── curves ──────────────────────────────────────────────────────────


def cubic_bezier(p0: Point, p1: Point, p2: Point, p3: Point, t: float) -> Point:
    mt = 1 - t
    a = mt ** 3
    b = 3 * mt ** 2 * t
    c = 3 * mt * t ** 2
    d = t ** 3
    return Point(
        a * p0[0] + b * p1[0] + c * p2[0] + d * p3[0],
        a * p0[1] + b * p1[1] + c * p2[1] + d * p3[1],
    )


def smootherstep(t: float) -> float:
    """Quintic ease t³(t(6t − 15) + 10): 0→0, 1→1, flat first and second
    derivatives at both ends."""
    return t * t * t * (t * (t * 6 - 15) + 10)


# ── intersections ───────────────────────────────────────────────────


def line_intersection(
    p1: Point, p2: Point, p3: Point, p4: Point,
) -> Point | None:
    """Intersection of infinite lines (p1→p2) and (p3→p4), or None if parallel."""
    d = (p1[0] - p2[0]) * (p3[1] - p4[1]) - (p1[1] - p2[1]) * (p3[0] - p4[0])
    if abs(d) < 1e-6:
        return None
    t = ((p1[0] - p3[0]) * (p3[1] - p4[1]) - (p1[1] - p3[1]) * (p3[0] - p4[0])) / d
    return Point(
        p1[0] + t * (p2[0] - p1[0]),
        p1[1] + t * (p2[1] - p1[1]),
    )


# ── arcs ────────────────────────────────────────────────────────────


def arc_center(start: Point, end: Point, sweep_deg: float) -> Point | None:
    """Centre of the circular arc from *start* to *end* sweeping *sweep_deg*.

    Positive sweep runs counter-clockwise, so the centre sits to the left
    of the chord for sweeps below 180°.  Returns None for a zero sweep or
    a zero-length chord.
    """
    chord = dist(start, end)
    half_sweep = math.radians(abs(sweep_deg)) / 2
    if chord < 1e-9 or half_sweep < 1e-9:
        return None
    tan_half = math.tan(half_sweep)
    if abs(tan_half) < 1e-12:
        return None
    ux = (end[0] - start[0]) / chord
    uy = (end[1] - start[1]) / chord
    # left-hand normal of the chord
    nx, ny = -uy, ux
    h = (chord / 2) / tan_half
    sign = 1.0 if sweep_deg > 0 else -1.0
    mx = (start[0] + end[0]) / 2
    my = (start[1] + end[1]) / 2
    return Point(mx + sign * nx * h, my + sign * ny * h)


def arc_points(
    start: Point, end: Point, sweep_deg: float, steps: int = 16,
) -> list[Point]:
    """Polyline approximation of an arc, *steps* + 1 points including both ends.

    Falls back to the straight chord when the arc is degenerate.
    """
    centre = arc_center(start, end, sweep_deg)
    if centre is None:
        return [Point(*start), Point(*end)]
    r = dist(centre, start)
    a0 = math.atan2(start[1] - centre[1], start[0] - centre[0])
    sweep = math.radians(sweep_deg)
    pts = [
        Point(
            centre[0] + r * math.cos(a0 + sweep * i / steps),
            centre[1] + r * math.sin(a0 + sweep * i / steps),
        )
        for i in range(steps)
    ]
    pts.append(Point(*end))
    return pts
