"""Trace dataclasses — the typed boundary value every stage consumes."""

from __future__ import annotations

from dataclasses import dataclass, field

from trace_beautify.geometry import Point, dist


@dataclass(frozen=True)
class Segment:
    """A straight copper trace read from the host.

    Orientation carries no meaning; path assembly may walk it either way.
    Segments exploded from a polyline keep the polyline's id in
    ``origin_id`` so the whole polyline can be deleted once.
    """

    start: Point
    end: Point
    width: float
    net: str
    layer: int
    id: str
    origin_id: str | None = None

    @property
    def length(self) -> float:
        return dist(self.start, self.end)

    @property
    def host_id(self) -> str:
        """Id to delete on the host (the polyline for exploded segments)."""
        return self.origin_id or self.id

    @property
    def group_key(self) -> tuple[str, int]:
        return (self.net, self.layer)


@dataclass
class TracePath:
    """An ordered run of ≥3 points and the segments joining them.

    ``segments[i]`` joins ``points[i]`` and ``points[i + 1]``.
    """

    points: list[Point]
    segments: list[Segment]
    net: str
    layer: int
    closed: bool = False

    @property
    def corner_indices(self) -> range:
        """Interior point indices (the corners that can be smoothed)."""
        return range(1, len(self.points) - 1)

    def prev_width(self, i: int) -> float:
        """Width of the leg arriving at point *i*."""
        if 0 < i <= len(self.segments):
            return self.segments[i - 1].width
        return self.segments[0].width

    def next_width(self, i: int) -> float:
        """Width of the leg leaving point *i*."""
        if 0 <= i < len(self.segments):
            return self.segments[i].width
        return self.prev_width(i)

    @property
    def host_ids(self) -> list[str]:
        """Host primitives backing this path, each listed once."""
        seen: dict[str, None] = {}
        for s in self.segments:
            seen.setdefault(s.host_id, None)
        return list(seen)


@dataclass
class SegmentGroup:
    """All segments of one net on one layer."""

    net: str
    layer: int
    segments: list[Segment] = field(default_factory=list)
