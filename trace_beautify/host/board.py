"""In-memory board — a reference host for the engine.

Stores lines, arcs and polylines by id, tracks a selection, and
implements the sink, source and reader protocols.  Used by the CLI, the
web server and the tests; an editor integration supplies its own
adapter instead.
"""

from __future__ import annotations

import itertools
import math
import uuid

from trace_beautify.geometry import Point
from trace_beautify.pipeline.tracks import Segment, explode_polyline

from .models import ArcPrimitive, LinePrimitive, PolylinePrimitive
from .protocols import HostCallError, Scope


class Board:
    """A flat, per-layer store of copper primitives."""

    def __init__(self, document_id: str | None = None) -> None:
        self._document_id = document_id or uuid.uuid4().hex[:12]
        self.lines: dict[str, LinePrimitive] = {}
        self.arcs: dict[str, ArcPrimitive] = {}
        self.polylines: dict[str, PolylinePrimitive] = {}
        self.selection: set[str] = set()
        self._ids = itertools.count(1)

    @property
    def document_id(self) -> str:
        return self._document_id

    def _new_id(self, prefix: str) -> str:
        while True:
            pid = f"{prefix}{next(self._ids)}"
            if pid not in self:
                return pid

    def __contains__(self, pid: str) -> bool:
        return pid in self.lines or pid in self.arcs or pid in self.polylines

    def __len__(self) -> int:
        return len(self.lines) + len(self.arcs) + len(self.polylines)

    # ── Sink ───────────────────────────────────────────────────────

    @staticmethod
    def _check(width: float, *coords: float) -> None:
        if not all(math.isfinite(c) for c in coords):
            raise HostCallError(f"non-finite coordinate in {coords}")
        if not (width > 0 and math.isfinite(width)):
            raise HostCallError(f"invalid width {width}")

    async def create_line(
        self, net: str, layer: int,
        x1: float, y1: float, x2: float, y2: float,
        width: float,
    ) -> str:
        self._check(width, x1, y1, x2, y2)
        pid = self._new_id("L")
        self.lines[pid] = LinePrimitive(
            id=pid, net=net, layer=layer,
            start=Point(x1, y1), end=Point(x2, y2), width=width,
        )
        return pid

    async def create_arc(
        self, net: str, layer: int,
        x1: float, y1: float, x2: float, y2: float,
        sweep_deg: float, width: float,
    ) -> str:
        self._check(width, x1, y1, x2, y2, sweep_deg)
        pid = self._new_id("A")
        self.arcs[pid] = ArcPrimitive(
            id=pid, net=net, layer=layer,
            start=Point(x1, y1), end=Point(x2, y2),
            sweep_deg=sweep_deg, width=width,
        )
        return pid

    def add_polyline(self, net: str, layer: int, points: list[Point], width: float) -> str:
        self._check(width, *(c for p in points for c in p))
        pid = self._new_id("P")
        self.polylines[pid] = PolylinePrimitive(
            id=pid, net=net, layer=layer,
            points=[Point(*p) for p in points], width=width,
        )
        return pid

    async def delete(self, ids: list[str]) -> None:
        missing = []
        for pid in ids:
            if self.lines.pop(pid, None) is not None:
                pass
            elif self.arcs.pop(pid, None) is not None:
                pass
            elif self.polylines.pop(pid, None) is not None:
                pass
            else:
                missing.append(pid)
            self.selection.discard(pid)
        if missing:
            raise HostCallError(f"unknown primitive(s): {', '.join(missing)}")

    # ── Source / reader ────────────────────────────────────────────

    def select(self, ids: list[str]) -> None:
        self.selection = {pid for pid in ids if pid in self}

    async def segments(self, scope: Scope) -> list[Segment]:
        """Lines as segments plus exploded polylines, for *scope*."""
        wanted = None if scope == "all" else self.selection
        segs: list[Segment] = []
        for ln in self.lines.values():
            if wanted is not None and ln.id not in wanted:
                continue
            segs.append(Segment(
                start=ln.start, end=ln.end, width=ln.width,
                net=ln.net, layer=ln.layer, id=ln.id,
            ))
        for pl in self.polylines.values():
            if wanted is not None and pl.id not in wanted:
                continue
            segs.extend(explode_polyline(pl.id, pl.net, pl.layer, pl.points, pl.width))
        return segs

    async def all_lines(self) -> list[LinePrimitive]:
        return list(self.lines.values())

    async def all_arcs(self) -> list[ArcPrimitive]:
        return list(self.arcs.values())


# ── Serialization ──────────────────────────────────────────────────


def board_to_dict(board: Board) -> dict:
    """Serialize a Board to a JSON-safe dict."""
    return {
        "document_id": board.document_id,
        "lines": [
            {
                "id": ln.id, "net": ln.net, "layer": ln.layer,
                "start": list(ln.start), "end": list(ln.end),
                "width": ln.width,
            }
            for ln in board.lines.values()
        ],
        "arcs": [
            {
                "id": a.id, "net": a.net, "layer": a.layer,
                "start": list(a.start), "end": list(a.end),
                "sweep_deg": a.sweep_deg, "width": a.width,
            }
            for a in board.arcs.values()
        ],
        "polylines": [
            {
                "id": p.id, "net": p.net, "layer": p.layer,
                "points": [list(pt) for pt in p.points],
                "width": p.width,
            }
            for p in board.polylines.values()
        ],
        "selection": sorted(board.selection),
    }


def parse_board(data: dict) -> Board:
    """Parse a board dict (as written by board_to_dict) back into a Board.

    Ids are kept when present so selections and snapshots stay valid.
    """
    board = Board(document_id=data.get("document_id"))
    for item in data.get("lines", []):
        pid = str(item.get("id") or board._new_id("L"))
        board._check(float(item["width"]), *item["start"], *item["end"])
        board.lines[pid] = LinePrimitive(
            id=pid, net=str(item.get("net", "")), layer=int(item.get("layer", 1)),
            start=Point(*map(float, item["start"])), end=Point(*map(float, item["end"])),
            width=float(item["width"]),
        )
    for item in data.get("arcs", []):
        pid = str(item.get("id") or board._new_id("A"))
        board._check(float(item["width"]), *item["start"], *item["end"])
        board.arcs[pid] = ArcPrimitive(
            id=pid, net=str(item.get("net", "")), layer=int(item.get("layer", 1)),
            start=Point(*map(float, item["start"])), end=Point(*map(float, item["end"])),
            sweep_deg=float(item["sweep_deg"]), width=float(item["width"]),
        )
    for item in data.get("polylines", []):
        pid = str(item.get("id") or board._new_id("P"))
        pts = [Point(*map(float, p)) for p in item["points"]]
        board._check(float(item["width"]), *(c for p in pts for c in p))
        board.polylines[pid] = PolylinePrimitive(
            id=pid, net=str(item.get("net", "")), layer=int(item.get("layer", 1)),
            points=pts, width=float(item["width"]),
        )
    board.select(list(data.get("selection", [])))
    return board
