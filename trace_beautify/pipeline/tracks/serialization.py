"""Segment serialization — JSON conversion."""

from __future__ import annotations

from trace_beautify.geometry import Point

from .models import Segment, TracePath


def segment_to_dict(seg: Segment) -> dict:
    """Serialize a Segment to a JSON-safe dict."""
    return {
        "id": seg.id,
        "net": seg.net,
        "layer": seg.layer,
        "start": [seg.start.x, seg.start.y],
        "end": [seg.end.x, seg.end.y],
        "width": seg.width,
        **({"origin_id": seg.origin_id} if seg.origin_id else {}),
    }


def parse_segment(data: dict) -> Segment:
    """Parse a segment dict back into a Segment.

    Accepts either ``start``/``end`` pairs or flat
    ``start_x``/``start_y``/``end_x``/``end_y`` keys.
    """
    if "start" in data:
        start = Point(*map(float, data["start"]))
        end = Point(*map(float, data["end"]))
    else:
        start = Point(float(data["start_x"]), float(data["start_y"]))
        end = Point(float(data["end_x"]), float(data["end_y"]))
    width = float(data["width"])
    if width <= 0:
        raise ValueError(f"Segment {data.get('id')!r}: width must be positive, got {width}")
    return Segment(
        start=start,
        end=end,
        width=width,
        net=str(data.get("net", "")),
        layer=int(data.get("layer", 1)),
        id=str(data["id"]),
        origin_id=data.get("origin_id"),
    )


def path_to_dict(path: TracePath) -> dict:
    """Serialize an extracted path (points + contributing segment ids)."""
    return {
        "net": path.net,
        "layer": path.layer,
        "closed": path.closed,
        "points": [[p.x, p.y] for p in path.points],
        "segments": [s.id for s in path.segments],
    }
