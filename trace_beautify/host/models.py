"""Host primitive records — plain data as stored on (or read from) a board."""

from __future__ import annotations

from dataclasses import dataclass

from trace_beautify.geometry import Point


@dataclass
class LinePrimitive:
    id: str
    net: str
    layer: int
    start: Point
    end: Point
    width: float


@dataclass
class ArcPrimitive:
    id: str
    net: str
    layer: int
    start: Point
    end: Point
    sweep_deg: float
    width: float


@dataclass
class PolylinePrimitive:
    id: str
    net: str
    layer: int
    points: list[Point]
    width: float
