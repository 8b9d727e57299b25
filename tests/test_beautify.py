"""End-to-end tests for the beautify orchestration.

Runs full passes against the in-memory Board with the shapely
ClearanceOracle, so the DRC loop sees real geometry.
"""

from __future__ import annotations

import unittest

from trace_beautify.config import BeautifySettings
from trace_beautify.geometry import Point
from trace_beautify.host import ArcWidthTable, Board, ClearanceOracle
from trace_beautify.pipeline.beautify import (
    add_width_transitions,
    beautify_routing,
    remove_transitions,
    undo_last_operation,
)
from trace_beautify.pipeline.transition import TransitionRegistry
from trace_beautify.snapshots import SnapshotStore
from tests.board_fixtures import add_line, make_l_board


def _has_line(board: Board, a, b) -> bool:
    ends = {(Point(*a), Point(*b)), (Point(*b), Point(*a))}
    return any(
        (Point(round(ln.start.x, 6), round(ln.start.y, 6)),
         Point(round(ln.end.x, 6), round(ln.end.y, 6))) in ends
        for ln in board.lines.values()
    )


class BeautifyTestCase(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.board = make_l_board()
        self.widths = ArcWidthTable()
        self.registry = TransitionRegistry()
        self.snapshots = SnapshotStore(self.board, self.board, self.widths)

    async def beautify(self, scope="all", settings=None, oracle=None):
        if oracle is None:
            oracle = ClearanceOracle(self.board)
        return await beautify_routing(
            scope, self.board, self.board, oracle, settings,
            snapshots=self.snapshots, arc_widths=self.widths, registry=self.registry,
        )


class TestBeautify(BeautifyTestCase):

    async def test_clean_board(self):
        report = await self.beautify()
        self.assertEqual(report.paths, 1)
        self.assertEqual(report.arcs, 1)
        self.assertEqual(report.drc_outcome, "clean")
        self.assertEqual(report.drc_rounds, 1)
        self.assertEqual(report.failed_calls, 0)
        self.assertEqual(len(self.board.arcs), 1)
        self.assertTrue(_has_line(self.board, (0, 0), (170, 0)))
        self.assertTrue(_has_line(self.board, (200, 30), (200, 200)))

    async def test_obstacle_halves_radius(self):
        """The r=30 arc crosses a net-B stub; the r=15 redraw clears it."""
        add_line(self.board, 188.0, 11.62, 188.8, 11.62, width=1.0, net="B")
        report = await self.beautify()
        self.assertEqual(report.drc_outcome, "clean")
        self.assertEqual(report.drc_rounds, 2)
        (arc,) = self.board.arcs.values()
        self.assertEqual({round(arc.start.x, 6), round(arc.end.x, 6)}, {185.0, 200.0})
        self.assertEqual(self.widths.get(self.board.document_id, arc.id), 10.0)

    async def test_snapshots_around_pass(self):
        await self.beautify()
        names = [s.name for s in self.snapshots.list()]
        self.assertEqual(names, ["Beautify (All) After", "Beautify (All) Before"])

    async def test_drc_disabled(self):
        report = await self.beautify(settings=BeautifySettings(enable_drc=False))
        self.assertEqual(report.drc_outcome, "disabled")
        self.assertEqual(report.drc_rounds, 0)
        self.assertEqual(report.arcs, 1)

    async def test_no_oracle(self):
        report = await beautify_routing(
            "all", self.board, self.board, None, snapshots=self.snapshots,
        )
        self.assertEqual(report.drc_outcome, "oracle_unavailable")
        self.assertEqual(report.arcs, 1)

    async def test_empty_selection(self):
        report = await self.beautify(scope="selected")
        self.assertEqual(report.message, "no selection")
        self.assertEqual(len(self.snapshots), 0)
        self.assertEqual(len(self.board.lines), 2)

    async def test_selected_scope(self):
        add_line(self.board, 0, 500, 100, 500, width=1.0, net="C")
        add_line(self.board, 100, 500, 100, 600, width=1.0, net="C")
        self.board.select([pid for pid, ln in self.board.lines.items() if ln.net == "A"])
        report = await self.beautify(scope="selected")
        self.assertEqual(report.paths, 1)
        self.assertEqual(len(self.board.arcs), 1)
        self.assertTrue(_has_line(self.board, (0, 500), (100, 500)))
        names = [s.name for s in self.snapshots.list()]
        self.assertEqual(names[-1], "Beautify (Selected) Before")

    async def test_nothing_to_smooth(self):
        board = Board()
        add_line(board, 0, 0, 10, 0)
        report = await beautify_routing("all", board, board, ClearanceOracle(board))
        self.assertEqual(report.message, "no corners to smooth")
        self.assertEqual(len(board.lines), 1)

    async def test_polyline_deleted_once(self):
        board = Board()
        board.add_polyline("A", 1, [Point(0, 0), Point(100, 0), Point(100, 100), Point(200, 100)], 1.0)
        add_line(board, 100, 100, 100, 200, width=1.0, net="A")   # tee at (100, 100)
        report = await beautify_routing("all", board, board, ClearanceOracle(board))
        self.assertEqual(report.paths, 1)
        self.assertEqual(report.failed_calls, 0)
        self.assertEqual(board.polylines, {})
        self.assertEqual(len(board.arcs), 1)
        # the piece past the tee is kept as a plain line
        self.assertTrue(_has_line(board, (100, 100), (200, 100)))


class TestUndo(BeautifyTestCase):

    async def test_undo_restores_original(self):
        await self.beautify()
        diff = await undo_last_operation(self.snapshots, self.registry)
        self.assertIsNotNone(diff)
        self.assertEqual(len(diff.created), 2)
        self.assertEqual(len(self.board.arcs), 0)
        self.assertTrue(_has_line(self.board, (0, 0), (200, 0)))
        self.assertTrue(_has_line(self.board, (200, 0), (200, 200)))

    async def test_nothing_to_undo(self):
        self.assertIsNone(await undo_last_operation(self.snapshots))


class TestWidthTransitions(BeautifyTestCase):

    def setUp(self):
        super().setUp()
        self.board = Board(document_id="w")
        add_line(self.board, 0, 0, 100, 0, width=3.0)
        add_line(self.board, 100, 0, 200, 0, width=1.0)
        add_line(self.board, 200, 0, 200, 200, width=1.0)
        self.snapshots = SnapshotStore(self.board, self.board, self.widths)

    async def test_sync_after_beautify(self):
        settings = BeautifySettings(enable_drc=False, sync_width_transition=True)
        report = await self.beautify(settings=settings)
        self.assertEqual(report.arcs, 1)
        self.assertEqual(report.transitions, 1)
        self.assertEqual(len(self.registry), 1)
        self.assertTrue(_has_line(self.board, (0, 0), (97, 0)))
        names = [s.name for s in self.snapshots.list()]
        self.assertNotIn("Width (All)", names)

        # the next pass redraws the shortened segment at full length
        pieces = self.registry.piece_ids
        await self.beautify(settings=BeautifySettings(enable_drc=False))
        self.assertEqual(len(self.registry), 0)
        self.assertFalse(pieces & set(self.board.lines))
        self.assertTrue(_has_line(self.board, (0, 0), (100, 0)))

    async def test_add_and_remove(self):
        stats = await add_width_transitions(
            "all", self.board, self.board,
            registry=self.registry, snapshots=self.snapshots, arc_widths=self.widths,
        )
        self.assertEqual(stats.created, 1)
        self.assertEqual(self.snapshots.latest().name, "Width (All)")
        self.assertEqual(await remove_transitions(self.board, self.registry), 1)
        self.assertEqual(len(self.board.lines), 3)
        self.assertTrue(_has_line(self.board, (0, 0), (100, 0)))

    async def test_empty_scope(self):
        stats = await add_width_transitions(
            "selected", self.board, self.board, registry=self.registry,
        )
        self.assertEqual(stats.created, 0)
        self.assertEqual(len(self.board.lines), 3)


class TestBeautifyOverTransitions(BeautifyTestCase):
    """A segment shortened by a taper is later redrawn by beautify."""

    def setUp(self):
        super().setUp()
        self.board = Board(document_id="wt")
        add_line(self.board, 0, -200, 0, 0, width=30.0)
        add_line(self.board, 0, 0, 200, 0, width=30.0)
        add_line(self.board, 200, 0, 400, 0, width=10.0)
        self.snapshots = SnapshotStore(self.board, self.board, self.widths)

    def _covered(self, x: float, width: float) -> bool:
        """Some line of *width* on y=0 spans *x*."""
        return any(
            abs(ln.start.y) < 1e-6 and abs(ln.end.y) < 1e-6
            and min(ln.start.x, ln.end.x) <= x <= max(ln.start.x, ln.end.x)
            and ln.width == width
            for ln in self.board.lines.values()
        )

    async def _add(self) -> set[str]:
        stats = await add_width_transitions(
            "all", self.board, self.board, registry=self.registry,
        )
        self.assertEqual(stats.created, 1)
        self.assertTrue(_has_line(self.board, (0, 0), (170, 0)))
        return self.registry.piece_ids

    async def test_redraw_drops_taper(self):
        pieces = await self._add()
        report = await self.beautify(settings=BeautifySettings(enable_drc=False))
        self.assertEqual(report.arcs, 1)
        self.assertEqual(len(self.registry), 0)
        self.assertFalse(pieces & set(self.board.lines))
        self.assertTrue(_has_line(self.board, (90, 0), (200, 0)))
        self.assertEqual(len(self.board.lines), 3)

        self.assertEqual(await remove_transitions(self.board, self.registry), 0)
        self.assertTrue(self._covered(185, 30.0))

    async def test_sync_then_remove_leaves_no_gap(self):
        await self._add()
        settings = BeautifySettings(enable_drc=False, sync_width_transition=True)
        report = await self.beautify(settings=settings)
        self.assertEqual(report.transitions, 1)
        self.assertTrue(_has_line(self.board, (90, 0), (170, 0)))

        self.assertEqual(await remove_transitions(self.board, self.registry), 1)
        self.assertTrue(_has_line(self.board, (90, 0), (200, 0)))
        self.assertTrue(self._covered(185, 30.0))
        self.assertEqual(len(self.board.lines), 3)


if __name__ == "__main__":
    unittest.main()
