"""Tests for the DRC feedback controller.

Validates:
  - A flagged arc halves its corner radius and only its path is redrawn
  - The loop stops after retries + 1 checks
  - The last retry forces corners straight
  - Oracle failures and foreign violations leave the board untouched
"""

from __future__ import annotations

import unittest

from trace_beautify.geometry import Point
from trace_beautify.host import Board, HostWriter
from trace_beautify.pipeline.drc import (
    DrcOutcome,
    DrcState,
    EmitOptions,
    PathContext,
    apply_violations,
    emit_path,
    run_feedback_loop,
)
from trace_beautify.pipeline.smoother import RadiusPolicy
from trace_beautify.pipeline.tracks import extract_paths
from tests.board_fixtures import ScriptedOracle, add_line, make_l_board


OPTIONS = EmitOptions(policy=RadiusPolicy(ratio=3.0))


async def _emit_all(board: Board) -> tuple[HostWriter, list[PathContext]]:
    """Replace every path on *board* with its optimistic smoothing."""
    writer = HostWriter(board)
    paths = extract_paths(await board.segments("all"))
    contexts = []
    for path in paths:
        await writer.delete_each(path.host_ids)
        ctx = PathContext(path=path)
        await emit_path(ctx, writer, OPTIONS)
        contexts.append(ctx)
    return writer, contexts


def _everything(board: Board):
    return lambda: set(board.lines) | set(board.arcs)


class TestFeedbackLoop(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.board = make_l_board()
        self.writer, self.contexts = await _emit_all(self.board)

    async def test_optimistic_emission(self):
        self.assertEqual(len(self.board.arcs), 1)
        self.assertEqual(len(self.board.lines), 2)
        self.assertEqual(self.contexts[0].arcs_created, 1)

    async def test_halve_then_clean(self):
        """Scenario D: the r=30 arc is flagged once, the r=15 redraw passes."""
        oracle = ScriptedOracle(lambda: set(self.board.arcs), set())
        result = await run_feedback_loop(self.contexts, self.writer, oracle, options=OPTIONS)

        self.assertEqual(result.outcome, DrcOutcome.CLEAN)
        self.assertEqual(result.rounds, 2)
        self.assertEqual(result.halved, 1)
        self.assertEqual(self.contexts[0].corner_states[1].scale, 0.5)
        self.assertEqual(
            result.history,
            [DrcState.OPTIMISTIC, DrcState.CHECKING, DrcState.REPAIRING,
             DrcState.CHECKING, DrcState.CLEAN],
        )
        arc = next(iter(self.board.arcs.values()))
        ends = {Point(round(arc.start.x, 6), round(arc.start.y, 6)),
                Point(round(arc.end.x, 6), round(arc.end.y, 6))}
        self.assertEqual(ends, {Point(185, 0), Point(200, 15)})

    async def test_exhausted(self):
        oracle = ScriptedOracle(_everything(self.board))
        result = await run_feedback_loop(
            self.contexts, self.writer, oracle, retries=2, options=OPTIONS,
        )
        self.assertEqual(oracle.calls, 3)
        self.assertEqual(result.outcome, DrcOutcome.EXHAUSTED)
        self.assertEqual(result.halved, 2)
        self.assertEqual(result.forced, 1)
        self.assertEqual(len(self.board.arcs), 0)

    async def test_scale_floor_forces_straight(self):
        """0.5, 0.25, 0.125, then below the floor → sharp; the next check is unrelated."""
        oracle = ScriptedOracle(_everything(self.board))
        result = await run_feedback_loop(
            self.contexts, self.writer, oracle, retries=4, options=OPTIONS,
        )
        self.assertEqual(oracle.calls, 5)
        self.assertEqual(result.outcome, DrcOutcome.UNRELATED)
        self.assertTrue(self.contexts[0].corner_states[1].forced_straight)
        self.assertEqual(self.contexts[0].forced_straight, 1)

    async def test_zero_retries(self):
        oracle = ScriptedOracle(_everything(self.board))
        result = await run_feedback_loop(
            self.contexts, self.writer, oracle, retries=0, options=OPTIONS,
        )
        self.assertEqual(oracle.calls, 1)
        self.assertEqual(result.outcome, DrcOutcome.EXHAUSTED)
        self.assertEqual(result.forced, 1)
        self.assertEqual(result.halved, 0)

    async def test_oracle_failure_keeps_board(self):
        before = set(self.board.arcs)
        oracle = ScriptedOracle(RuntimeError("DRC engine offline"))
        result = await run_feedback_loop(self.contexts, self.writer, oracle, options=OPTIONS)
        self.assertEqual(result.outcome, DrcOutcome.ORACLE_UNAVAILABLE)
        self.assertEqual(result.rounds, 1)
        self.assertEqual(set(self.board.arcs), before)

    async def test_non_set_result(self):
        oracle = ScriptedOracle(["A3"])
        result = await run_feedback_loop(self.contexts, self.writer, oracle, options=OPTIONS)
        self.assertEqual(result.outcome, DrcOutcome.ORACLE_UNAVAILABLE)

    async def test_unrelated_violations(self):
        ids = list(self.contexts[0].created_ids)
        oracle = ScriptedOracle({"L999"})
        result = await run_feedback_loop(self.contexts, self.writer, oracle, options=OPTIONS)
        self.assertEqual(result.outcome, DrcOutcome.UNRELATED)
        self.assertEqual(self.contexts[0].created_ids, ids)

    async def test_no_paths(self):
        result = await run_feedback_loop([], self.writer, ScriptedOracle(set()))
        self.assertEqual(result.outcome, DrcOutcome.CLEAN)
        self.assertEqual(result.rounds, 0)


class TestOnlyAffectedPathsRedrawn(unittest.IsolatedAsyncioTestCase):

    async def test_other_net_untouched(self):
        board = make_l_board(net="A")
        add_line(board, 0, 1000, 200, 1000, width=10.0, net="B")
        add_line(board, 200, 1000, 200, 1200, width=10.0, net="B")
        writer, contexts = await _emit_all(board)
        by_net = {ctx.path.net: ctx for ctx in contexts}
        b_ids = list(by_net["B"].created_ids)
        a_arcs = {pid for pid in by_net["A"].created_ids if pid in board.arcs}

        oracle = ScriptedOracle(a_arcs, set())
        result = await run_feedback_loop(contexts, writer, oracle, options=OPTIONS)

        self.assertEqual(result.outcome, DrcOutcome.CLEAN)
        self.assertEqual(by_net["B"].created_ids, b_ids)
        self.assertFalse(set(by_net["A"].created_ids) & a_arcs)
        self.assertNotIn(1, by_net["B"].corner_states)


class TestApplyViolations(unittest.IsolatedAsyncioTestCase):

    async def test_corner_halved_once_per_check(self):
        board = make_l_board()
        _, contexts = await _emit_all(board)
        ctx = contexts[0]
        flagged = {pid for pid, corner in ctx.id_to_corner.items() if corner == 1}
        self.assertEqual(len(flagged), 2)   # lead-in line and arc

        decision = apply_violations(contexts, flagged, final=False)
        self.assertEqual(decision.halved, 1)
        self.assertEqual(decision.paths, [ctx])
        self.assertEqual(ctx.corner_states[1].scale, 0.5)

    async def test_tail_line_not_attributed(self):
        board = make_l_board()
        _, contexts = await _emit_all(board)
        ctx = contexts[0]
        tail = [pid for pid in ctx.created_ids if pid not in ctx.id_to_corner]
        self.assertEqual(len(tail), 1)
        decision = apply_violations(contexts, set(tail), final=False)
        self.assertEqual(decision.paths, [])


if __name__ == "__main__":
    unittest.main()
