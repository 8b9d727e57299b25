"""Tests for the snapshot store (capture, bounded history, restore)."""

from __future__ import annotations

import unittest

from trace_beautify.geometry import Point
from trace_beautify.host import ArcWidthTable, Board
from trace_beautify.snapshots import MAX_SNAPSHOTS, SnapshotNotFound, SnapshotStore
from tests.board_fixtures import add_line, make_l_board


class TestSnapshotStore(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.board = make_l_board()
        self.widths = ArcWidthTable()
        self.store = SnapshotStore(self.board, self.board, self.widths)

    async def test_capture_copies_lines_and_arcs(self):
        await self.board.create_arc("A", 1, 0, 0, 10, 10, 90.0, 10.0)
        snap = await self.store.capture("Beautify (All) Before")
        self.assertEqual(snap.id, 1)
        self.assertEqual(len(snap.lines), 2)
        self.assertEqual(len(snap.arcs), 1)
        self.assertEqual(snap.summary()["lines"], 2)

    async def test_side_table_width_wins(self):
        aid = await self.board.create_arc("A", 1, 0, 0, 10, 10, 90.0, 1.0)
        self.widths.record(self.board.document_id, aid, 10.0)
        snap = await self.store.capture()
        self.assertEqual(snap.arcs[0]["width"], 10.0)

    async def test_bounded_newest_first(self):
        for i in range(MAX_SNAPSHOTS + 3):
            await self.store.capture(f"pass {i}")
        snaps = self.store.list()
        self.assertEqual(len(snaps), MAX_SNAPSHOTS)
        self.assertEqual(snaps[0].name, f"pass {MAX_SNAPSHOTS + 2}")
        self.assertEqual(snaps[0].id, MAX_SNAPSHOTS + 3)
        with self.assertRaises(SnapshotNotFound):
            self.store.get(1)

    async def test_latest_by_suffix(self):
        await self.store.capture("Beautify (All) Before")
        await self.store.capture("Beautify (All) After")
        self.assertEqual(self.store.latest("Before").name, "Beautify (All) Before")
        self.assertEqual(self.store.latest().name, "Beautify (All) After")
        self.assertIsNone(self.store.latest("Nope"))

    async def test_restore(self):
        snap = await self.store.capture()
        old_ids = set(self.board.lines)
        add_line(self.board, 0, 50, 10, 50)
        await self.board.create_arc("A", 1, 0, 0, 10, 10, 90.0, 1.0)

        diff = await self.store.restore(snap.id)

        self.assertEqual(len(diff.deleted), 4)
        self.assertEqual(len(diff.created), 2)
        self.assertEqual(len(self.board.lines), 2)
        self.assertEqual(len(self.board.arcs), 0)
        self.assertFalse(old_ids & set(self.board.lines))
        ends = sorted((ln.start, ln.end) for ln in self.board.lines.values())
        self.assertEqual(ends[0], (Point(0, 0), Point(200, 0)))

    async def test_restore_arc_width_from_snapshot(self):
        aid = await self.board.create_arc("A", 1, 0, 0, 10, 10, 90.0, 1.0)
        self.widths.record(self.board.document_id, aid, 7.5)
        snap = await self.store.capture()
        await self.store.restore(snap.id)
        (arc,) = self.board.arcs.values()
        self.assertEqual(arc.width, 7.5)
        self.assertEqual(self.widths.get(self.board.document_id, arc.id), 7.5)
        self.assertNotIn((self.board.document_id, aid), self.widths)

    async def test_restore_unknown(self):
        with self.assertRaises(SnapshotNotFound):
            await self.store.restore(42)

    async def test_observers(self):
        seen = []
        unsubscribe = self.store.subscribe(lambda store: seen.append(len(store)))
        await self.store.capture()
        await self.store.capture()
        unsubscribe()
        await self.store.capture()
        self.assertEqual(seen, [1, 2])

    async def test_failing_observer_does_not_block(self):
        def broken(store):
            raise RuntimeError("observer down")
        self.store.subscribe(broken)
        snap = await self.store.capture()
        self.assertEqual(self.store.get(snap.id), snap)

    async def test_delete_and_clear(self):
        a = await self.store.capture()
        await self.store.capture()
        self.store.delete(a.id)
        self.assertEqual(len(self.store), 1)
        self.store.clear()
        self.assertEqual(len(self.store), 0)

    async def test_persistence(self):
        await self.store.capture("first")
        await self.store.capture("second")
        other = SnapshotStore(Board(), Board())
        other.load_dict(self.store.to_dict())
        self.assertEqual([s.name for s in other.list()], ["second", "first"])
        self.assertEqual(other.list()[1].lines, self.store.list()[1].lines)


if __name__ == "__main__":
    unittest.main()
