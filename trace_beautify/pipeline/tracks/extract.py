"""Path extraction — recover continuous trace runs from unordered segments.

Algorithm overview:
  1. Drop zero-length segments (they would create self-loops).
  2. Index segments by quantized endpoint key.
  3. Seed a path with each unvisited segment and grow it at both ends,
     following the only unused neighbour while the end node has
     degree ≤ 2.  Branch points (tees) end the extension.
  4. A path that returns to its own first point is closed and stops;
     it is rotated to start at its lowest point so the corner left
     unsmoothed does not depend on input order.
  5. Keep paths with ≥ 3 points (at least one interior corner).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from trace_beautify.geometry import Point
from trace_beautify.pipeline.config import GEOMETRY_RULES

from .models import Segment, SegmentGroup, TracePath


log = logging.getLogger(__name__)


def point_key(p: Point, precision: int = GEOMETRY_RULES.key_precision) -> str:
    """Quantized coordinate key; absorbs float round-trip noise."""
    # + 0.0 folds -0.0 into 0.0 so both sides of the origin share a key
    return f"{round(p[0], precision) + 0.0:.{precision}f},{round(p[1], precision) + 0.0:.{precision}f}"


def group_segments(segments: Iterable[Segment]) -> list[SegmentGroup]:
    """Split segments by (net, layer), preserving first-seen order."""
    groups: dict[tuple[str, int], SegmentGroup] = {}
    for seg in segments:
        key = seg.group_key
        if key not in groups:
            groups[key] = SegmentGroup(net=seg.net, layer=seg.layer)
        groups[key].segments.append(seg)
    return list(groups.values())


def extract_paths(
    segments: list[Segment],
    precision: int = GEOMETRY_RULES.key_precision,
) -> list[TracePath]:
    """Extract maximal simple paths from one net/layer group.

    Parameters
    ----------
    segments : list[Segment]
        Segments sharing one net and layer.
    precision : int
        Decimal places for endpoint keys.

    Returns
    -------
    list[TracePath]
        Paths with at least three points, in seed order.
    """
    if not segments:
        return []

    segs = [
        s for s in segments
        if point_key(s.start, precision) != point_key(s.end, precision)
    ]
    dropped = len(segments) - len(segs)
    if dropped:
        log.debug("Extractor: dropped %d zero-length segments", dropped)

    net, layer = segments[0].net, segments[0].layer

    # ── adjacency ──────────────────────────────────────────────────
    connections: dict[str, list[int]] = {}
    keys: list[tuple[str, str]] = []
    for idx, seg in enumerate(segs):
        k1 = point_key(seg.start, precision)
        k2 = point_key(seg.end, precision)
        keys.append((k1, k2))
        connections.setdefault(k1, []).append(idx)
        connections.setdefault(k2, []).append(idx)

    used: set[int] = set()
    paths: list[TracePath] = []

    def _next_from(end_key: str) -> tuple[int, Point] | None:
        """The unused segment continuing from *end_key*, with its far point."""
        conns = connections.get(end_key, [])
        if len(conns) > 2:
            return None  # branch point
        for idx in conns:
            if idx in used:
                continue
            k1, k2 = keys[idx]
            if k1 == end_key:
                return idx, segs[idx].end
            if k2 == end_key:
                return idx, segs[idx].start
        return None

    for seed, seed_seg in enumerate(segs):
        if seed in used:
            continue
        used.add(seed)
        points: list[Point] = [seed_seg.start, seed_seg.end]
        ordered: list[Segment] = [seed_seg]
        first_key = keys[seed][0]
        closed = False

        # grow the tail first, then the head
        while not closed:
            step = _next_from(point_key(points[-1], precision))
            if step is None:
                break
            idx, far = step
            used.add(idx)
            points.append(far)
            ordered.append(segs[idx])
            if point_key(far, precision) == first_key:
                closed = True

        while not closed:
            step = _next_from(point_key(points[0], precision))
            if step is None:
                break
            idx, far = step
            used.add(idx)
            points.insert(0, far)
            ordered.insert(0, segs[idx])
            if point_key(far, precision) == point_key(points[-1], precision):
                closed = True

        if closed:
            points, ordered = _canonical_loop(points, ordered, precision)

        if len(points) >= 3:
            paths.append(TracePath(
                points=points,
                segments=ordered,
                net=net,
                layer=layer,
                closed=closed,
            ))

    log.debug("Extractor: net=%s layer=%s — %d segments → %d paths",
              net, layer, len(segs), len(paths))
    return paths


def _canonical_loop(
    points: list[Point],
    ordered: list[Segment],
    precision: int,
) -> tuple[list[Point], list[Segment]]:
    """Rotate a closed loop to start at its lowest point, walking towards
    the lower of that point's two neighbours.

    ``points`` repeats its first point at the end; ``ordered[i]`` joins
    ``points[i]`` and ``points[i + 1]``.
    """
    ring = points[:-1]
    n = len(ring)

    def _q(p: Point) -> tuple[float, float]:
        return (round(p[0], precision) + 0.0, round(p[1], precision) + 0.0)

    m = min(range(n), key=lambda i: _q(ring[i]))
    ring = ring[m:] + ring[:m]
    segs = ordered[m:] + ordered[:m]
    if n > 2 and _q(ring[-1]) < _q(ring[1]):
        ring = [ring[0]] + ring[:0:-1]
        segs = segs[::-1]
    return ring + [ring[0]], segs


def explode_polyline(
    origin_id: str,
    net: str,
    layer: int,
    points: list[Point],
    width: float,
) -> list[Segment]:
    """Split a polyline into straight segments that point back to it."""
    return [
        Segment(
            start=Point(*points[i]),
            end=Point(*points[i + 1]),
            width=width,
            net=net,
            layer=layer,
            id=f"{origin_id}_seg{i}",
            origin_id=origin_id,
        )
        for i in range(len(points) - 1)
    ]
