"""DRC feedback controller — emit, check, shrink, re-emit.

After the optimistic emission every path's primitives are on the board.
Each check asks the oracle which primitives violate a rule.  Violations
that trace back to a corner halve that corner's radius scale; on the
last allowed retry, or once the scale would drop below the usability
floor, the corner is forced into a sharp joint instead.  Only the paths
owning an affected corner are deleted and re-emitted.

State flow::

    OPTIMISTIC → CHECKING → CLEAN
                    ↓  ↑
                 REPAIRING → EXHAUSTED

A scale is never raised, so every corner converges within the retry
budget and the loop performs at most ``retries + 1`` checks.
"""

from __future__ import annotations

import logging

from trace_beautify.geometry import dist
from trace_beautify.host.protocols import ViolationOracle
from trace_beautify.host.writer import HostWriter
from trace_beautify.pipeline.config import GEOMETRY_RULES, GeometryRules
from trace_beautify.pipeline.smoother import CornerState, PathOp, generate_path_ops

from .models import (
    DrcOutcome,
    DrcState,
    EmitOptions,
    FeedbackResult,
    PathContext,
    RepairDecision,
)


log = logging.getLogger(__name__)


# ── Emission ───────────────────────────────────────────────────────


async def commit_ops(
    ctx: PathContext,
    ops: list[PathOp],
    writer: HostWriter,
    rules: GeometryRules = GEOMETRY_RULES,
) -> int:
    """Create the primitives for *ops*, recording ids and their corners.

    Returns the number of arcs created.
    """
    arcs = 0
    net, layer = ctx.path.net, ctx.path.layer
    for op in ops:
        if dist(op.start, op.end) < rules.min_emit_length:
            continue
        if op.is_arc:
            new_id = await writer.arc(net, layer, op.start, op.end, op.sweep_deg, op.width)
        else:
            new_id = await writer.line(net, layer, op.start, op.end, op.width)
        if new_id is None:
            continue
        ctx.created_ids.append(new_id)
        if op.corner_index is not None:
            ctx.id_to_corner[new_id] = op.corner_index
        if op.is_arc:
            arcs += 1
    ctx.arcs_created = arcs
    return arcs


async def emit_path(
    ctx: PathContext,
    writer: HostWriter,
    options: EmitOptions,
    rules: GeometryRules = GEOMETRY_RULES,
) -> int:
    """Smooth *ctx.path* with its current corner states and commit it."""
    result = generate_path_ops(
        ctx.path,
        options.policy,
        ctx.corner_states,
        force_arc=options.force_arc,
        merge_uturns=options.merge_uturns,
        rules=rules,
    )
    ctx.stats = result.stats
    return await commit_ops(ctx, result.ops, writer, rules)


async def retract_path(ctx: PathContext, writer: HostWriter) -> None:
    """Delete everything previously emitted for *ctx*."""
    if ctx.created_ids:
        await writer.delete_each(ctx.created_ids)
        writer.arc_widths.forget(writer.document_id, ctx.created_ids)
    ctx.created_ids = []
    ctx.id_to_corner.clear()
    ctx.arcs_created = 0


# ── Violation handling ─────────────────────────────────────────────


def apply_violations(
    contexts: list[PathContext],
    violations: set[str],
    final: bool,
    rules: GeometryRules = GEOMETRY_RULES,
) -> RepairDecision:
    """Shrink or straighten every corner implicated by *violations*.

    Each corner is adjusted once per check even when several of its
    primitives are flagged: a line and an arc of the same corner both
    violating halve the scale once (to 0.5), not once per identifier
    (to 0.25).  The back-off is therefore one step per check, and
    ``retries`` bounds how far a corner can shrink.  Corners already
    forced straight are left alone and do not cause a re-emission.
    """
    decision = RepairDecision()
    for ctx in contexts:
        hit = {
            ctx.id_to_corner[pid]
            for pid in ctx.created_ids
            if pid in violations and pid in ctx.id_to_corner
        }
        changed = False
        for idx in sorted(hit):
            state = ctx.corner_states.setdefault(idx, CornerState())
            if state.forced_straight:
                continue
            next_scale = state.scale * 0.5
            if final or next_scale < rules.scale_floor:
                state.forced_straight = True
                decision.forced += 1
                log.debug("DRC: net %s corner %d forced straight", ctx.path.net, idx)
            else:
                state.scale = next_scale
                decision.halved += 1
                log.debug("DRC: net %s corner %d scale → %.3f", ctx.path.net, idx, next_scale)
            changed = True
        if changed:
            decision.paths.append(ctx)
    return decision


# ── Loop ───────────────────────────────────────────────────────────


async def run_feedback_loop(
    contexts: list[PathContext],
    writer: HostWriter,
    oracle: ViolationOracle,
    *,
    retries: int = 4,
    options: EmitOptions = EmitOptions(),
    rules: GeometryRules = GEOMETRY_RULES,
) -> FeedbackResult:
    """Check, repair and re-emit until clean or out of retries.

    Parameters
    ----------
    contexts : list[PathContext]
        Paths whose optimistic emission is already on the board.
    writer : HostWriter
        Guarded sink used for deletes and re-creates.
    oracle : ViolationOracle
        Returns the set of violating primitive ids.
    retries : int
        Re-emissions allowed after the first check.  0 = one check only.
    options : EmitOptions
        Smoothing options for re-emission.

    Returns
    -------
    FeedbackResult
        Outcome, number of checks and adjustment counts.
    """
    result = FeedbackResult(history=[DrcState.OPTIMISTIC])
    retries = max(0, retries)
    if not contexts:
        result.outcome = DrcOutcome.CLEAN
        result.history.append(DrcState.CLEAN)
        return result

    attempt = 0
    while True:
        final = attempt >= retries
        result.history.append(DrcState.CHECKING)
        result.rounds += 1
        log.info("DRC: check %d/%d", attempt + 1, retries + 1)

        try:
            violations = await oracle.check()
        except Exception as e:
            log.warning("DRC: oracle failed (%s), keeping current result", e)
            result.outcome = DrcOutcome.ORACLE_UNAVAILABLE
            break
        if not isinstance(violations, (set, frozenset)):
            log.warning("DRC: oracle returned %s instead of a set, keeping current result",
                        type(violations).__name__)
            result.outcome = DrcOutcome.ORACLE_UNAVAILABLE
            break

        if not violations:
            log.info("DRC: clean")
            result.outcome = DrcOutcome.CLEAN
            result.history.append(DrcState.CLEAN)
            break

        decision = apply_violations(contexts, violations, final, rules)
        if not decision.paths:
            log.info("DRC: %d violations, none caused by beautified corners", len(violations))
            result.outcome = DrcOutcome.UNRELATED
            break

        result.history.append(DrcState.REPAIRING)
        result.halved += decision.halved
        result.forced += decision.forced
        log.info("DRC: %d violations → %d corners halved, %d forced straight, %d paths redrawn",
                 len(violations), decision.halved, decision.forced, len(decision.paths))

        for ctx in decision.paths:
            await retract_path(ctx, writer)
            await emit_path(ctx, writer, options, rules)

        if final:
            result.outcome = DrcOutcome.EXHAUSTED
            result.history.append(DrcState.EXHAUSTED)
            break
        attempt += 1

    return result
