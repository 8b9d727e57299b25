"""Width transition generator.

Where two collinear segments of one net and layer meet with different
widths, the step is replaced by a taper: a chain of short straight
pieces whose widths follow a smootherstep curve from the wide width to
the narrow one.  The taper length is the width delta times a ratio,
split between the two sides by a balance setting; the wide segment is
shortened under its share of the taper.

Transitions are regenerated from scratch on every run.  A registry keyed
by junction coordinate remembers the pieces and the shortened wide
segments of earlier runs so they can be removed first.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace

from trace_beautify.geometry import Point, dist, smootherstep
from trace_beautify.host.writer import HostWriter
from trace_beautify.pipeline.config import GEOMETRY_RULES, GeometryRules
from trace_beautify.pipeline.tracks import Segment, group_segments, point_key

from .models import (
    TransitionJunction,
    TransitionPiece,
    TransitionProfile,
    TransitionRecord,
    TransitionRegistry,
    TransitionStats,
)


log = logging.getLogger(__name__)


# ── Detection ──────────────────────────────────────────────────────


def _ends(seg: Segment) -> tuple[tuple[Point, Point], tuple[Point, Point]]:
    """(joined end, far end) for each orientation of *seg*."""
    return (seg.start, seg.end), (seg.end, seg.start)


def find_junctions(
    segments: list[Segment],
    rules: GeometryRules = GEOMETRY_RULES,
) -> list[TransitionJunction]:
    """Collinear width changes among one net/layer group, one per point."""
    junctions: dict[str, TransitionJunction] = {}
    min_cos = rules.collinear_cos

    for i in range(len(segments)):
        for j in range(i + 1, len(segments)):
            s1, s2 = segments[i], segments[j]
            if abs(s1.width - s2.width) <= rules.width_tolerance:
                continue
            wide, narrow = (s1, s2) if s1.width > s2.width else (s2, s1)

            for w_join, w_far in _ends(wide):
                for n_join, n_far in _ends(narrow):
                    if dist(w_join, n_join) >= rules.junction_tolerance:
                        continue
                    ow = (w_far[0] - w_join[0], w_far[1] - w_join[1])
                    on = (n_far[0] - n_join[0], n_far[1] - n_join[1])
                    lw = math.hypot(*ow)
                    ln = math.hypot(*on)
                    if lw < rules.min_emit_length or ln < rules.min_emit_length:
                        continue
                    # both legs point away from the junction: straight = -1
                    cos = (ow[0] * on[0] + ow[1] * on[1]) / (lw * ln)
                    key = point_key(w_join, rules.key_precision)
                    if cos > -min_cos:
                        log.debug("Transition: %s not collinear (cos=%.3f), skipped", key, cos)
                        continue
                    if key in junctions:
                        continue
                    junctions[key] = TransitionJunction(
                        point=Point(*w_join),
                        key=key,
                        wide=wide,
                        narrow=narrow,
                        direction=Point(on[0] / ln, on[1] / ln),
                    )
    return list(junctions.values())


# ── Profile ────────────────────────────────────────────────────────


def build_profile(
    junction: TransitionJunction,
    *,
    ratio: float = 3.0,
    balance: float = 50.0,
    max_segments: int = 25,
    min_segments: int = 5,
    rules: GeometryRules = GEOMETRY_RULES,
) -> TransitionProfile | None:
    """Lay out the taper for *junction*, or None when it would be too short.

    Parameters
    ----------
    junction : TransitionJunction
        The width change; ``wide`` must be the full (untrimmed) segment.
    ratio : float
        Ideal taper length per unit of width delta.
    balance : float
        0 puts the whole taper on the narrow side, 100 on the wide side.
    max_segments, min_segments : int
        Bounds on the number of pieces.

    Returns
    -------
    TransitionProfile | None
        Pieces ordered from the wide end to the narrow end.
    """
    wide_w = junction.wide.width
    narrow_w = junction.narrow.width
    delta = wide_w - narrow_w
    ideal = delta * ratio

    share = min(100.0, max(0.0, balance)) / 100.0
    if junction.wide.origin_id is not None:
        # a polyline cannot be shortened piecewise
        share = 0.0

    wide_len = min(ideal * share, junction.wide.length * rules.side_cap)
    narrow_len = min(ideal * (1.0 - share), junction.narrow.length * rules.side_cap)
    total = wide_len + narrow_len
    if total < rules.min_transition_length:
        log.debug("Transition: %s too short (%.3f), skipped", junction.key, total)
        return None

    count = min(
        max_segments,
        max(
            min_segments,
            math.ceil(total / rules.transition_step),
            math.ceil(delta / rules.transition_step),
        ),
    )
    if total < rules.short_transition_length:
        count = min(count, rules.short_transition_segments)
    count = max(1, count)

    ux, uy = junction.direction
    ox = junction.point[0] - ux * wide_len
    oy = junction.point[1] - uy * wide_len

    profile = TransitionProfile(
        total_length=total,
        wide_length=wide_len,
        narrow_length=narrow_len,
        wide_width=wide_w,
        narrow_width=narrow_w,
    )
    for k in range(count):
        t1 = k / count
        t2 = (k + 1) / count
        # width at the trailing end so the last piece lands on the narrow width
        w = wide_w - delta * smootherstep(t2)
        profile.pieces.append(TransitionPiece(
            start=Point(ox + ux * t1 * total, oy + uy * t1 * total),
            end=Point(ox + ux * t2 * total, oy + uy * t2 * total),
            width=w,
        ))
    profile.pieces[-1].width = narrow_w

    log.debug("Transition: %s %.3f→%.3f length=%.3f (wide %.3f / narrow %.3f) pieces=%d",
              junction.key, wide_w, narrow_w, total, wide_len, narrow_len, count)
    return profile


# ── Host application ───────────────────────────────────────────────


def _move_end(seg: Segment, anchor: Point, to: Point) -> Segment:
    """*seg* with whichever end is nearer *anchor* moved to *to*."""
    if dist(seg.start, anchor) <= dist(seg.end, anchor):
        return replace(seg, start=Point(*to))
    return replace(seg, end=Point(*to))


def _same_geometry(a: Segment, b: Segment, precision: int) -> bool:
    return (
        point_key(a.start, precision) == point_key(b.start, precision)
        and point_key(a.end, precision) == point_key(b.end, precision)
    )


async def _replace_wide(
    writer: HostWriter,
    registry: TransitionRegistry,
    current: Segment,
    target: Segment,
) -> Segment | None:
    """Swap host primitive *current* for *target* geometry.

    Returns the new segment, *current* if the delete failed, or None if
    the delete succeeded but the re-create did not.
    """
    if not await writer.delete_each([current.id]):
        return current
    new_id = await writer.line(target.net, target.layer, target.start, target.end, target.width)
    if new_id is None:
        registry.replace_wide(current.id, None)
        return None
    seg = replace(target, id=new_id, origin_id=None)
    registry.replace_wide(current.id, seg)
    return seg


async def apply_width_transitions(
    segments: list[Segment],
    writer: HostWriter,
    registry: TransitionRegistry,
    *,
    ratio: float = 3.0,
    balance: float = 50.0,
    max_segments: int = 25,
    min_segments: int = 5,
    rules: GeometryRules = GEOMETRY_RULES,
) -> TransitionStats:
    """Detect junctions in *segments* and (re)generate their tapers.

    Pieces recorded in *registry* are ignored as input, and wide segments
    it shortened are seen at full length, so repeated runs converge on
    the same result.
    """
    stats = TransitionStats()
    precision = rules.key_precision

    owned = registry.piece_ids
    live: dict[str, Segment] = {s.id: s for s in segments if s.id not in owned}
    candidates = [registry.untrimmed(s, precision) for s in live.values()]
    alias: dict[str, str] = {}
    done: set[str] = set()

    for group in group_segments(candidates):
        if len(group.segments) < 2:
            continue
        junctions = find_junctions(group.segments, rules)
        found = {j.key for j in junctions}
        for rec in _stale_records(group.segments, registry, found, rules):
            await _undo_record(rec, writer, registry, live, alias)
            stats.cleared += 1
            log.debug("Transition: %s no longer a junction, taper removed", rec.key)

        for junction in junctions:
            if junction.key in done:
                continue
            done.add(junction.key)
            stats.junctions += 1
            try:
                await _regenerate(
                    junction, writer, registry, live, alias, stats,
                    ratio=ratio, balance=balance,
                    max_segments=max_segments, min_segments=min_segments,
                    rules=rules,
                )
            except Exception:
                log.exception("Transition: junction %s on net %s failed",
                              junction.key, junction.wide.net)
                stats.degenerate += 1

    stats.failed_calls = writer.failed_calls
    log.info("Transition: %d junctions, %d transitions created, %d replaced, %d skipped, "
             "%d cleared", stats.junctions, stats.created, stats.replaced, stats.skipped,
             stats.cleared)
    return stats


async def _regenerate(
    junction: TransitionJunction,
    writer: HostWriter,
    registry: TransitionRegistry,
    live: dict[str, Segment],
    alias: dict[str, str],
    stats: TransitionStats,
    *,
    ratio: float,
    balance: float,
    max_segments: int,
    min_segments: int,
    rules: GeometryRules,
) -> None:
    precision = rules.key_precision

    old = registry.pop(junction.key)
    if old is not None:
        if old.ids:
            await writer.delete_each(old.ids)
        stats.replaced += 1

    wide_id = junction.wide.id
    while wide_id in alias:
        wide_id = alias[wide_id]
    current = live.get(wide_id)
    if current is None:
        log.debug("Transition: wide segment of %s is gone, skipped", junction.key)
        stats.skipped += 1
        return

    anchor = old.trimmed_to if old is not None and old.trimmed_to is not None else junction.point
    base = _move_end(current, anchor, junction.point)

    profile = build_profile(
        replace(junction, wide=base),
        ratio=ratio, balance=balance,
        max_segments=max_segments, min_segments=min_segments,
        rules=rules,
    )

    trimmed: Point | None = None
    target = base
    if profile is not None and profile.wide_length > rules.min_emit_length:
        trimmed = profile.start
        target = _move_end(base, junction.point, trimmed)

    wide_seg: Segment | None = current
    if current.origin_id is None and not _same_geometry(current, target, precision):
        wide_seg = await _replace_wide(writer, registry, current, target)
        if wide_seg is not current:
            live.pop(current.id, None)
            if wide_seg is not None:
                live[wide_seg.id] = wide_seg
                alias[current.id] = wide_seg.id
        if wide_seg is current or wide_seg is None:
            trimmed = None

    if profile is None:
        stats.skipped += 1
        return

    ids: list[str] = []
    for piece in profile.pieces:
        new_id = await writer.line(
            junction.wide.net, junction.wide.layer, piece.start, piece.end, piece.width,
        )
        if new_id is not None:
            ids.append(new_id)

    if not ids and trimmed is None:
        return

    record = TransitionRecord(
        key=junction.key,
        junction=junction.point,
        net=junction.wide.net,
        layer=junction.wide.layer,
        ids=ids,
        wide_id=wide_seg.id if trimmed is not None else None,
        trimmed_to=trimmed,
    )
    registry.add(record)
    if record.wide_id is not None:
        registry.wide_segments[record.wide_id] = wide_seg
    stats.created += 1


async def _undo_record(
    rec: TransitionRecord,
    writer: HostWriter,
    registry: TransitionRegistry,
    live: dict[str, Segment] | None = None,
    alias: dict[str, str] | None = None,
) -> None:
    """Delete *rec*'s taper and pull its wide segment back to the junction.

    *live* and *alias* are kept in step when a run is in progress.
    """
    registry.pop(rec.key)
    if rec.ids:
        await writer.delete_each(rec.ids)
    if rec.wide_id is None or rec.trimmed_to is None:
        return
    seg = registry.wide_segments.get(rec.wide_id)
    if seg is None:
        return
    restored = await _replace_wide(
        writer, registry, seg, _move_end(seg, rec.trimmed_to, rec.junction),
    )
    if live is not None and restored is not seg:
        live.pop(seg.id, None)
        if restored is not None:
            live[restored.id] = restored
            alias[seg.id] = restored.id


def _stale_records(
    segments: list[Segment],
    registry: TransitionRegistry,
    found: set[str],
    rules: GeometryRules,
) -> list[TransitionRecord]:
    """Records of this group whose two segments still meet but no longer qualify."""
    net, layer = segments[0].net, segments[0].layer
    stale = []
    for rec in list(registry.records.values()):
        if rec.key in found or rec.net != net or rec.layer != layer:
            continue
        touching = sum(
            1 for s in segments
            if dist(s.start, rec.junction) < rules.junction_tolerance
            or dist(s.end, rec.junction) < rules.junction_tolerance
        )
        if touching >= 2:
            stale.append(rec)
    return stale


async def remove_width_transitions(
    writer: HostWriter,
    registry: TransitionRegistry,
) -> int:
    """Delete every recorded taper and restore the wide segments.

    Records are undone newest first.  Returns the number of transitions
    removed; the registry is empty afterwards.
    """
    removed = 0
    for rec in reversed(list(registry.records.values())):
        await _undo_record(rec, writer, registry)
        removed += 1
    registry.clear()
    log.info("Transition: removed %d transitions", removed)
    return removed
