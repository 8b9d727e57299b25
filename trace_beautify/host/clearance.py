"""Violation oracles.

``ClearanceOracle`` is a reference design-rule check over an in-memory
``Board``: every primitive becomes its copper footprint (the centreline
buffered by half the width) and any two footprints on the same layer but
different nets that come closer than the clearance are reported.

``ReportOracle`` adapts a host that returns a hierarchical DRC report
(category → sub-category → issue) by flattening it into a set of ids.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from shapely.geometry import LineString, Point as ShapelyPoint
from shapely.strtree import STRtree

from trace_beautify.geometry import arc_points

from .board import Board
from .protocols import OracleError


log = logging.getLogger(__name__)


COPPER_POUR_MARKER = "Copper Region"


# ── Shapely footprints ─────────────────────────────────────────────


def _footprint(points, width: float):
    """Copper area covered by a trace drawn through *points*."""
    pts = [(float(p[0]), float(p[1])) for p in points]
    if len(pts) < 2 or all(p == pts[0] for p in pts):
        return ShapelyPoint(pts[0]).buffer(width / 2)
    return LineString(pts).buffer(width / 2, cap_style="round")


class ClearanceOracle:
    """Minimum-gap check between copper of different nets.

    Parameters
    ----------
    board : Board
        The board to check.
    clearance : float
        Minimum copper-to-copper gap.
    arc_steps : int
        Chords used to approximate each arc.
    """

    def __init__(self, board: Board, clearance: float = 0.2, arc_steps: int = 16) -> None:
        self.board = board
        self.clearance = clearance
        self.arc_steps = arc_steps

    def _shapes(self) -> dict[int, list[tuple[str, str, object]]]:
        """layer → [(id, net, footprint)]"""
        by_layer: dict[int, list[tuple[str, str, object]]] = {}
        for ln in self.board.lines.values():
            by_layer.setdefault(ln.layer, []).append(
                (ln.id, ln.net, _footprint([ln.start, ln.end], ln.width)))
        for a in self.board.arcs.values():
            pts = arc_points(a.start, a.end, a.sweep_deg, self.arc_steps)
            by_layer.setdefault(a.layer, []).append(
                (a.id, a.net, _footprint(pts, a.width)))
        for pl in self.board.polylines.values():
            by_layer.setdefault(pl.layer, []).append(
                (pl.id, pl.net, _footprint(pl.points, pl.width)))
        return by_layer

    def violations(self) -> set[str]:
        flagged: set[str] = set()
        for layer, shapes in self._shapes().items():
            if len(shapes) < 2:
                continue
            geoms = [g for _, _, g in shapes]
            tree = STRtree(geoms)
            for i, (pid, net, geom) in enumerate(shapes):
                for j in tree.query(geom.buffer(self.clearance)):
                    j = int(j)
                    if j <= i:
                        continue
                    other_id, other_net, other = shapes[j]
                    if other_net == net:
                        continue
                    gap = geom.distance(other)
                    if gap < self.clearance:
                        log.debug("Clearance: %s (%s) ↔ %s (%s) on layer %d gap=%.4f",
                                  pid, net, other_id, other_net, layer, gap)
                        flagged.add(pid)
                        flagged.add(other_id)
        return flagged

    async def check(self) -> set[str]:
        flagged = self.violations()
        log.info("Clearance: %d primitives in violation (min gap %.3f)",
                 len(flagged), self.clearance)
        return flagged


# ── Hierarchical report adapter ────────────────────────────────────


def _issue_ids(issue: dict) -> set[str]:
    ids: set[str] = set()
    objs = issue.get("objs")
    if isinstance(objs, list):
        ids.update(o for o in objs if isinstance(o, str) and o)
    err = (issue.get("explanation") or {}).get("errData") or {}
    for key in ("obj1", "obj2"):
        val = err.get(key)
        if isinstance(val, str) and val:
            ids.add(val)
    return ids


def _is_copper_pour_issue(issue: dict) -> bool:
    if COPPER_POUR_MARKER in (issue.get("errorObjType") or ""):
        return True
    err = (issue.get("explanation") or {}).get("errData") or {}
    return any(
        COPPER_POUR_MARKER in (err.get(k) or "")
        for k in ("obj1Type", "obj2Type")
    )


def flatten_drc_report(categories: list, ignore_copper_pour: bool = True) -> set[str]:
    """Collect every implicated primitive id from a category tree.

    Sub-categories whose name mentions a copper region, and issues whose
    object types do, are skipped when *ignore_copper_pour* is set.
    """
    ids: set[str] = set()
    skipped = 0
    for category in categories:
        for sub in category.get("list") or []:
            if ignore_copper_pour and COPPER_POUR_MARKER in (sub.get("name") or ""):
                skipped += len(sub.get("list") or [])
                continue
            for issue in sub.get("list") or []:
                if ignore_copper_pour and _is_copper_pour_issue(issue):
                    skipped += 1
                    continue
                ids |= _issue_ids(issue)
    if skipped:
        log.debug("DRC report: ignored %d copper-pour issues", skipped)
    return ids


class ReportOracle:
    """Oracle over an async callable returning a raw DRC category list."""

    def __init__(
        self,
        fetch: Callable[[], Awaitable[object]],
        ignore_copper_pour: bool = True,
    ) -> None:
        self.fetch = fetch
        self.ignore_copper_pour = ignore_copper_pour

    async def check(self) -> set[str]:
        report = await self.fetch()
        if not isinstance(report, list):
            raise OracleError(f"DRC report is {type(report).__name__}, expected a list")
        return flatten_drc_report(report, self.ignore_copper_pour)
