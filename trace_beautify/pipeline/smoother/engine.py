"""Corner smoother — replaces path corners with tangent-circle arcs.

For every interior point the two legs are fitted with a circle of the
nominal radius (scaled by any DRC adjustment).  The tangent length is
clamped to a fraction of the shorter leg so neighbouring corners never
overlap, and the arc is rejected when its effective radius would be
narrower than half the trace width.  Rejected corners keep a sharp join.

Optional U-turn merge: two consecutive bends in the same rotational
direction joined by a short stub are replaced by one larger arc centred
on the intersection of the outer legs.
"""

from __future__ import annotations

import logging
import math

from trace_beautify.geometry import Point, angle_between, dist, lerp, line_intersection
from trace_beautify.pipeline.config import GEOMETRY_RULES, GeometryRules
from trace_beautify.pipeline.tracks import TracePath

from .models import CornerFit, CornerState, PathOp, RadiusPolicy, SmoothResult


log = logging.getLogger(__name__)


# ── Single-corner fitting ──────────────────────────────────────────


def fit_corner(
    p_prev: Point,
    p_corner: Point,
    p_next: Point,
    radius: float,
    max_width: float,
    *,
    force_arc: bool = True,
    rules: GeometryRules = GEOMETRY_RULES,
) -> CornerFit:
    """Fit a tangent circle of *radius* into the corner at *p_corner*.

    ``force_arc`` accepts an arc whose tangent length had to be clamped
    to the legs; it never overrides the width floor.
    """
    v1x, v1y = p_prev[0] - p_corner[0], p_prev[1] - p_corner[1]
    v2x, v2y = p_next[0] - p_corner[0], p_next[1] - p_corner[1]
    mag1 = math.hypot(v1x, v1y)
    mag2 = math.hypot(v2x, v2y)
    if mag1 < 1e-9 or mag2 < 1e-9:
        return CornerFit(
            angle_rad=0.0, tangent=0.0, actual_tangent=0.0,
            effective_radius=0.0, clamped=False, accepted=False,
            reason="zero-length leg",
        )

    dot = (v1x * v2x + v1y * v2y) / (mag1 * mag2)
    angle = math.acos(max(-1.0, min(1.0, dot)))
    tan_half = math.tan(angle / 2)

    # angle → 180°: tan → ∞, d → 0 (straight through)
    # angle → 0°:   tan → 0, guarded to d = 0 (fold-back)
    d = radius / tan_half if abs(tan_half) > rules.tan_guard else 0.0

    actual_d = min(d, min(mag1, mag2) * rules.clamp_ratio)
    clamped = d > rules.min_emit_length and actual_d < d * rules.clamp_flag_ratio
    effective = actual_d * abs(tan_half)

    fit = CornerFit(
        angle_rad=angle,
        tangent=d,
        actual_tangent=actual_d,
        effective_radius=effective,
        clamped=clamped,
        accepted=False,
    )

    if actual_d <= rules.min_tangent:
        fit.reason = "tangent too short"
    elif clamped and not force_arc:
        fit.reason = "radius clamped"
    elif effective < max_width / 2 - rules.width_floor_tolerance:
        fit.reason = "narrower than trace"
    else:
        fit.accepted = True
        fit.start = lerp(p_corner, p_prev, actual_d / mag1)
        fit.end = lerp(p_corner, p_next, actual_d / mag2)
        fit.sweep_deg = angle_between((-v1x, -v1y), (v2x, v2y))
    return fit


# ── U-turn merge ───────────────────────────────────────────────────


def _try_merge(
    path: TracePath,
    i: int,
    radius: float,
    policy: RadiusPolicy,
    scale: float,
    force_arc: bool,
    rules: GeometryRules,
) -> tuple[CornerFit, float] | None:
    """Fit one arc across corners *i* and *i + 1*, or None if not mergeable.

    Returns the fit plus the width of the leg after corner *i + 1*.
    """
    pts = path.points
    p_prev, p_corner, p_next, p_after = pts[i - 1], pts[i], pts[i + 1], pts[i + 2]

    stub = dist(p_corner, p_next)
    if stub >= radius * rules.uturn_stub_factor:
        return None

    v_in = (p_corner[0] - p_prev[0], p_corner[1] - p_prev[1])
    v_mid = (p_next[0] - p_corner[0], p_next[1] - p_corner[1])
    v_out = (p_after[0] - p_next[0], p_after[1] - p_next[1])
    a1 = angle_between(v_in, v_mid)
    a2 = angle_between(v_mid, v_out)
    if a1 * a2 <= 0:
        return None
    if abs(a1) <= rules.uturn_min_turn_deg or abs(a2) <= rules.uturn_min_turn_deg:
        return None

    hub = line_intersection(p_prev, p_corner, p_next, p_after)
    if hub is None:
        return None
    reach1 = dist(hub, p_corner)
    reach2 = dist(hub, p_next)
    reach_limit = stub * rules.uturn_reach_factor
    if reach1 >= reach_limit or reach2 >= reach_limit:
        return None

    after_width = path.next_width(i + 1)
    max_width = max(path.prev_width(i), path.next_width(i), after_width)
    merged_radius = policy.nominal(max_width) * scale

    fit = fit_corner(
        p_prev, hub, p_after, merged_radius, max_width,
        force_arc=force_arc, rules=rules,
    )
    if not fit.accepted:
        log.debug("Smoother: merge at corner %d rejected (%s)", i, fit.reason)
        return None

    # tangent points must land on the real legs, past both corners
    slack = rules.min_emit_length
    if fit.actual_tangent < reach1 - slack or fit.actual_tangent < reach2 - slack:
        log.debug("Smoother: merge at corner %d rejected (tangent inside stub)", i)
        return None

    return fit, after_width


# ── Path → PathOps ─────────────────────────────────────────────────


def generate_path_ops(
    path: TracePath,
    policy: RadiusPolicy,
    corner_states: dict[int, CornerState] | None = None,
    *,
    force_arc: bool = True,
    merge_uturns: bool = False,
    rules: GeometryRules = GEOMETRY_RULES,
) -> SmoothResult:
    """Turn a path into line/arc drawing ops, one decision per corner.

    Parameters
    ----------
    path : TracePath
        Path with at least three points.
    policy : RadiusPolicy
        Fixed radius or width ratio.
    corner_states : dict[int, CornerState] | None
        DRC adjustments keyed by corner index.  Missing = scale 1.0.
    force_arc : bool
        Keep arcs whose radius had to be clamped to the legs.
    merge_uturns : bool
        Allow merging same-direction bend pairs over a short stub.

    Returns
    -------
    SmoothResult
        Ordered ops (each tagged with its corner index) and counters.
    """
    states = corner_states or {}
    result = SmoothResult()
    pts = path.points
    if len(pts) < 3:
        return result

    ops = result.ops
    stats = result.stats
    cursor = pts[0]
    last_corner = len(pts) - 2

    i = 1
    while i <= last_corner:
        p_corner = pts[i]
        prev_w = path.prev_width(i)
        next_w = path.next_width(i)
        state = states.get(i, CornerState())

        if state.forced_straight:
            ops.append(PathOp("line", cursor, p_corner, prev_w, i))
            cursor = p_corner
            stats.sharp += 1
            i += 1
            continue

        max_width = max(prev_w, next_w)
        radius = policy.nominal(prev_w, next_w) * state.scale

        try:
            # ── U-turn merge ──────────────────────────────────────
            if (
                merge_uturns
                and i < last_corner
                and not state.adjusted
                and not states.get(i + 1, CornerState()).forced_straight
            ):
                merged = _try_merge(path, i, radius, policy, state.scale, force_arc, rules)
                if merged is not None:
                    fit, after_w = merged
                    if dist(cursor, fit.start) > rules.min_emit_length:
                        ops.append(PathOp("line", cursor, fit.start, prev_w, i))
                    ops.append(PathOp("arc", fit.start, fit.end, after_w, i, fit.sweep_deg))
                    cursor = fit.end
                    stats.arcs += 1
                    stats.merged += 1
                    if fit.clamped:
                        stats.clamped += 1
                    log.debug("Smoother: merged corners %d+%d, sweep=%.1f°, r=%.3f",
                              i, i + 1, fit.sweep_deg, fit.effective_radius)
                    i += 2
                    continue

            # ── Normal corner ─────────────────────────────────────
            fit = fit_corner(
                pts[i - 1], p_corner, pts[i + 1], radius, max_width,
                force_arc=force_arc, rules=rules,
            )
        except Exception:
            log.exception("Smoother: corner %d of net %s failed, keeping it sharp",
                          i, path.net)
            ops.append(PathOp("line", cursor, p_corner, prev_w, i))
            cursor = p_corner
            stats.degenerate += 1
            i += 1
            continue

        log.debug("Smoother: corner %d at (%.3f, %.3f) angle=%.1f° r=%.3f d=%.3f "
                  "actualD=%.3f widths=%.3f/%.3f %s",
                  i, p_corner[0], p_corner[1], math.degrees(fit.angle_rad), radius,
                  fit.tangent, fit.actual_tangent, prev_w, next_w,
                  "arc" if fit.accepted else f"sharp ({fit.reason})")

        if fit.clamped:
            stats.clamped += 1

        if fit.accepted:
            ops.append(PathOp("line", cursor, fit.start, prev_w, i))
            # the arc takes the outgoing width so it joins the next leg flush
            ops.append(PathOp("arc", fit.start, fit.end, next_w, i, fit.sweep_deg))
            cursor = fit.end
            stats.arcs += 1
        else:
            ops.append(PathOp("line", cursor, p_corner, prev_w, i))
            cursor = p_corner
            stats.sharp += 1
        i += 1

    ops.append(PathOp("line", cursor, pts[-1], path.next_width(len(pts) - 2), None))
    return result
