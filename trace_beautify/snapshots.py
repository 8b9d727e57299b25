"""
Snapshot store — full copies of every line and arc for undo.

A snapshot is taken before and after each mutating pass.  Restoring one
deletes every line and arc currently on the board and recreates the
snapshot's primitives (ids change).  Only the newest ``max_entries``
snapshots are kept.

Interested parties (a session that persists the list, a UI showing it)
register with ``subscribe`` and are called with the store after every
change.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from trace_beautify.geometry import Point
from trace_beautify.host import ArcWidthTable, HostWriter, PrimitiveReader, PrimitiveSink


log = logging.getLogger(__name__)

MAX_SNAPSHOTS = 10


class SnapshotNotFound(KeyError):
    """No snapshot with the requested id."""


@dataclass
class Snapshot:
    id: int
    name: str
    timestamp: float
    lines: list[dict] = field(default_factory=list)
    arcs: list[dict] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "timestamp": self.timestamp,
            "lines": self.lines,
            "arcs": self.arcs,
        }

    @classmethod
    def from_dict(cls, data: dict) -> Snapshot:
        return cls(
            id=int(data["id"]),
            name=str(data.get("name", "")),
            timestamp=float(data.get("timestamp", 0.0)),
            lines=list(data.get("lines", [])),
            arcs=list(data.get("arcs", [])),
        )

    def summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "timestamp": self.timestamp,
            "lines": len(self.lines),
            "arcs": len(self.arcs),
        }


@dataclass
class RestoreDiff:
    created: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)


Observer = Callable[["SnapshotStore"], None]


class SnapshotStore:
    """Bounded, newest-first history of board snapshots."""

    def __init__(
        self,
        reader: PrimitiveReader,
        sink: PrimitiveSink,
        arc_widths: ArcWidthTable | None = None,
        max_entries: int = MAX_SNAPSHOTS,
    ) -> None:
        self.reader = reader
        self.sink = sink
        self.arc_widths = arc_widths if arc_widths is not None else ArcWidthTable()
        self.max_entries = max_entries
        self._snapshots: list[Snapshot] = []
        self._observers: list[Observer] = []

    # ── observers ──────────────────────────────────────────────────

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Call *observer* after every change.  Returns an unsubscribe function."""
        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    def _notify(self) -> None:
        for observer in list(self._observers):
            try:
                observer(self)
            except Exception:
                log.exception("Snapshots: observer %r failed", observer)

    # ── queries ────────────────────────────────────────────────────

    def list(self) -> list[Snapshot]:
        """Snapshots, newest first."""
        return list(self._snapshots)

    def get(self, snapshot_id: int) -> Snapshot:
        for snap in self._snapshots:
            if snap.id == snapshot_id:
                return snap
        raise SnapshotNotFound(snapshot_id)

    def latest(self, suffix: str | None = None) -> Snapshot | None:
        """Newest snapshot, optionally the newest whose name ends with *suffix*."""
        for snap in self._snapshots:
            if suffix is None or snap.name.endswith(suffix):
                return snap
        return None

    def __len__(self) -> int:
        return len(self._snapshots)

    # ── mutations ──────────────────────────────────────────────────

    async def capture(self, name: str = "Auto Save") -> Snapshot:
        """Copy every line and arc currently on the board."""
        doc = self.sink.document_id
        lines = [
            {
                "net": ln.net, "layer": ln.layer,
                "start": list(ln.start), "end": list(ln.end),
                "width": ln.width,
            }
            for ln in await self.reader.all_lines()
        ]
        arcs = [
            {
                "net": a.net, "layer": a.layer,
                "start": list(a.start), "end": list(a.end),
                "sweep_deg": a.sweep_deg,
                # the side table beats the host's arc width
                "width": self.arc_widths.get(doc, a.id, a.width),
            }
            for a in await self.reader.all_arcs()
        ]
        next_id = max((s.id for s in self._snapshots), default=0) + 1
        snap = Snapshot(id=next_id, name=name, timestamp=time.time(), lines=lines, arcs=arcs)
        self._snapshots.insert(0, snap)
        del self._snapshots[self.max_entries:]
        log.info("Snapshots: captured #%d %r (%d lines, %d arcs)",
                 snap.id, name, len(lines), len(arcs))
        self._notify()
        return snap

    async def restore(self, snapshot_id: int) -> RestoreDiff:
        """Replace all lines and arcs on the board with the snapshot's."""
        snap = self.get(snapshot_id)
        writer = HostWriter(self.sink, self.arc_widths)
        diff = RestoreDiff()

        current = [ln.id for ln in await self.reader.all_lines()]
        current += [a.id for a in await self.reader.all_arcs()]
        for pid in current:
            if await writer.delete_each([pid]):
                diff.deleted.append(pid)
        self.arc_widths.forget(self.sink.document_id, current)

        for item in snap.lines:
            new_id = await writer.line(
                item["net"], item["layer"],
                Point(*item["start"]), Point(*item["end"]), item["width"],
            )
            if new_id is not None:
                diff.created.append(new_id)
        for item in snap.arcs:
            new_id = await writer.arc(
                item["net"], item["layer"],
                Point(*item["start"]), Point(*item["end"]),
                item["sweep_deg"], item["width"],
            )
            if new_id is not None:
                diff.created.append(new_id)

        log.info("Snapshots: restored #%d %r (%d deleted, %d created, %d failed)",
                 snap.id, snap.name, len(diff.deleted), len(diff.created), writer.failed_calls)
        self._notify()
        return diff

    def delete(self, snapshot_id: int) -> None:
        snap = self.get(snapshot_id)
        self._snapshots.remove(snap)
        self._notify()

    def clear(self) -> None:
        self._snapshots.clear()
        self._notify()

    # ── persistence ────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {"snapshots": [s.to_dict() for s in self._snapshots]}

    def load_dict(self, data: dict | None) -> None:
        """Replace the history with *data* (as written by ``to_dict``)."""
        snaps = [Snapshot.from_dict(d) for d in (data or {}).get("snapshots", [])]
        snaps.sort(key=lambda s: (s.timestamp, s.id), reverse=True)
        self._snapshots = snaps[: self.max_entries]
