"""
Beautify orchestration — wires the stages together for one pass.

    source → group by net/layer → extract paths → delete originals
           → optimistic emission → DRC feedback loop
           → (optional) width transitions → snapshot

Every stage reports through counters instead of raising, so a pass
always ends with a ``BeautifyReport`` even when parts of it failed.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass

from trace_beautify.config import BeautifySettings
from trace_beautify.host import (
    ArcWidthTable,
    HostWriter,
    PrimitiveSink,
    Scope,
    SegmentSource,
    ViolationOracle,
)
from trace_beautify.pipeline.config import GEOMETRY_RULES, GeometryRules
from trace_beautify.pipeline.drc import (
    DrcOutcome,
    EmitOptions,
    PathContext,
    emit_path,
    run_feedback_loop,
)
from trace_beautify.pipeline.tracks import Segment, extract_paths, group_segments
from trace_beautify.pipeline.transition import (
    TransitionRegistry,
    TransitionStats,
    apply_width_transitions,
    remove_width_transitions,
)
from trace_beautify.snapshots import RestoreDiff, SnapshotStore


log = logging.getLogger(__name__)


@dataclass
class BeautifyReport:
    """User-visible summary of one beautify pass."""

    scope: str
    paths: int = 0
    arcs: int = 0
    clamped: int = 0
    merged: int = 0
    forced_straight: int = 0
    drc_rounds: int = 0
    drc_outcome: str = DrcOutcome.DISABLED.value
    transitions: int = 0
    failed_calls: int = 0
    message: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


def _label(scope: Scope) -> str:
    return "All" if scope == "all" else "Selected"


async def _snapshot(snapshots: SnapshotStore | None, name: str) -> None:
    if snapshots is None:
        return
    try:
        await snapshots.capture(name)
    except Exception as e:
        log.warning("Snapshot %r failed: %s", name, e)


# ── Beautify ───────────────────────────────────────────────────────


async def _retire_originals(
    paths_segments: list[Segment],
    all_segments: list[Segment],
    writer: HostWriter,
    registry: TransitionRegistry,
) -> None:
    """Delete the host primitives behind the extracted paths.

    A polyline is deleted once; pieces of it that did not end up in any
    path are recreated as plain lines so nothing disappears.  Tapers that
    shortened a retired segment are deleted with it, since the path is
    redrawn at the segment's full length.
    """
    used = {s.id for s in paths_segments}
    host_ids: dict[str, None] = {}
    for s in paths_segments:
        host_ids.setdefault(s.host_id, None)
    await writer.delete_each(list(host_ids))

    stale = [rec for hid in host_ids for rec in registry.drop_wide(hid)]
    for rec in stale:
        if rec.ids:
            await writer.delete_each(rec.ids)
    if stale:
        log.debug("Beautify: dropped %d transitions on redrawn segments", len(stale))

    orphans = [
        s for s in all_segments
        if s.origin_id is not None and s.origin_id in host_ids and s.id not in used
    ]
    for s in orphans:
        await writer.line(s.net, s.layer, s.start, s.end, s.width)
    if orphans:
        log.debug("Beautify: kept %d polyline pieces outside any path", len(orphans))


async def beautify_routing(
    scope: Scope,
    source: SegmentSource,
    sink: PrimitiveSink,
    oracle: ViolationOracle | None,
    settings: BeautifySettings | None = None,
    *,
    snapshots: SnapshotStore | None = None,
    arc_widths: ArcWidthTable | None = None,
    registry: TransitionRegistry | None = None,
    rules: GeometryRules = GEOMETRY_RULES,
) -> BeautifyReport:
    """Smooth every corner in *scope* and validate the result.

    Parameters
    ----------
    scope : "selected" | "all"
        Which traces to process.
    source, sink : SegmentSource, PrimitiveSink
        Where segments come from and where primitives go.
    oracle : ViolationOracle | None
        Design-rule check; None skips the feedback loop.
    settings : BeautifySettings
        User options (defaults when None).
    snapshots : SnapshotStore | None
        Receives "Beautify (<scope>) Before/After" snapshots.
    arc_widths : ArcWidthTable | None
        Side table receiving the width of every emitted arc.
    registry : TransitionRegistry | None
        Transition pieces it owns are left alone unless the segment they
        shortened is redrawn.

    Returns
    -------
    BeautifyReport
    """
    settings = settings or BeautifySettings()
    registry = registry if registry is not None else TransitionRegistry()
    report = BeautifyReport(scope=scope)

    segments = await source.segments(scope)
    # shortened wide segments are read back at full length
    owned = registry.piece_ids
    segments = [
        registry.untrimmed(s, rules.key_precision)
        for s in segments if s.id not in owned
    ]
    if not segments:
        report.message = "no selection" if scope == "selected" else "no traces"
        log.info("Beautify: %s", report.message)
        return report

    label = _label(scope)
    await _snapshot(snapshots, f"Beautify ({label}) Before")

    writer = HostWriter(sink, arc_widths)
    options = EmitOptions(
        policy=settings.radius_policy,
        force_arc=settings.force_arc,
        merge_uturns=settings.merge_transition_segments,
    )

    contexts: list[PathContext] = []
    for group in group_segments(segments):
        for path in extract_paths(group.segments, rules.key_precision):
            contexts.append(PathContext(path=path))
    report.paths = len(contexts)
    log.info("Beautify: %d segments → %d paths", len(segments), len(contexts))

    if not contexts:
        report.message = "no corners to smooth"
        return report

    await _retire_originals(
        [s for ctx in contexts for s in ctx.path.segments], segments, writer, registry,
    )

    # optimistic pass
    for ctx in contexts:
        await emit_path(ctx, writer, options, rules)

    if settings.enable_drc:
        if oracle is None:
            log.warning("Beautify: DRC enabled but no oracle configured")
            report.drc_outcome = DrcOutcome.ORACLE_UNAVAILABLE.value
        else:
            feedback = await run_feedback_loop(
                contexts, writer, oracle,
                retries=settings.drc_retry_count,
                options=options,
                rules=rules,
            )
            report.drc_rounds = feedback.rounds
            report.drc_outcome = feedback.outcome.value

    for ctx in contexts:
        report.arcs += ctx.arcs_created
        report.clamped += ctx.stats.clamped
        report.merged += ctx.stats.merged
        report.forced_straight += ctx.forced_straight
    report.failed_calls = writer.failed_calls

    if settings.sync_width_transition:
        stats = await add_width_transitions(
            "all", source, sink, settings,
            registry=registry, arc_widths=arc_widths,
            snapshots=None, rules=rules,
        )
        report.transitions = stats.created
        report.failed_calls += stats.failed_calls

    await _snapshot(snapshots, f"Beautify ({label}) After")

    log.info("Beautify: %d arcs, %d clamped, %d forced straight, DRC %s after %d checks, "
             "%d failed host calls",
             report.arcs, report.clamped, report.forced_straight,
             report.drc_outcome, report.drc_rounds, report.failed_calls)
    return report


# ── Width transitions ──────────────────────────────────────────────


async def add_width_transitions(
    scope: Scope,
    source: SegmentSource,
    sink: PrimitiveSink,
    settings: BeautifySettings | None = None,
    *,
    registry: TransitionRegistry,
    snapshots: SnapshotStore | None = None,
    arc_widths: ArcWidthTable | None = None,
    rules: GeometryRules = GEOMETRY_RULES,
) -> TransitionStats:
    """Generate (or regenerate) width tapers for the traces in *scope*.

    A "Width (<scope>)" snapshot is captured first when *snapshots* is
    given; beautify passes None because it already holds a snapshot.
    """
    settings = settings or BeautifySettings()
    segments = await source.segments(scope)
    if not segments:
        log.info("Transition: nothing in scope %r", scope)
        return TransitionStats()

    await _snapshot(snapshots, f"Width ({_label(scope)})")

    writer = HostWriter(sink, arc_widths)
    return await apply_width_transitions(
        segments, writer, registry,
        ratio=settings.width_transition_ratio,
        balance=settings.width_transition_balance,
        max_segments=settings.width_transition_segments,
        min_segments=settings.width_transition_min_segments,
        rules=rules,
    )


async def remove_transitions(
    sink: PrimitiveSink,
    registry: TransitionRegistry,
    arc_widths: ArcWidthTable | None = None,
) -> int:
    """Delete every generated taper and restore shortened segments."""
    return await remove_width_transitions(HostWriter(sink, arc_widths), registry)


# ── Undo ───────────────────────────────────────────────────────────


async def undo_last_operation(
    snapshots: SnapshotStore,
    registry: TransitionRegistry | None = None,
) -> RestoreDiff | None:
    """Restore the newest "... Before" snapshot.  None when there is none.

    Restoring recreates every line with a new id, so the transition
    registry no longer matches the board and is cleared.
    """
    snap = snapshots.latest("Before")
    if snap is None:
        log.info("Undo: no snapshot to restore")
        return None
    diff = await snapshots.restore(snap.id)
    if registry is not None:
        registry.clear()
    log.info("Undo: restored %r", snap.name)
    return diff
