"""Shared geometric constants for the beautify pipeline.

Every tolerance the extractor, smoother, transition generator and DRC
loop compare against lives here, so the stages agree on what counts as
"the same point", "too short" or "collinear".  All distances are in the
host's native unit.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class GeometryRules:
    """Numeric thresholds for the geometry/feedback engine."""

    key_precision: int = 3
    """Decimal places used to quantize endpoints into adjacency keys."""

    # ── Corner fitting ─────────────────────────────────────────────

    clamp_ratio: float = 0.45
    """Tangent length may use at most this fraction of the shorter leg."""

    clamp_flag_ratio: float = 0.95
    """A corner whose clamped tangent length falls below this fraction of
    the ideal one is reported as radius-clamped."""

    min_tangent: float = 0.05
    """Smallest tangent length that still produces an arc."""

    width_floor_tolerance: float = 0.05
    """Slack allowed when comparing the effective radius to half the
    trace width."""

    tan_guard: float = 1e-4
    """|tan(angle/2)| below this is treated as a degenerate corner."""

    min_emit_length: float = 0.001
    """Straight ops shorter than this are never sent to the host."""

    uturn_stub_factor: float = 1.5
    """A connecting leg shorter than factor × radius is a merge candidate."""

    uturn_min_turn_deg: float = 1.0
    """Both bends of a merge candidate must turn at least this much."""

    uturn_reach_factor: float = 10.0
    """The outer-leg intersection must lie within factor × stub length
    of both corners."""

    # ── Width transitions ──────────────────────────────────────────

    junction_tolerance: float = 0.1
    """Endpoints closer than this are considered joined."""

    width_tolerance: float = 0.01
    """Widths closer than this are considered equal."""

    collinear_angle_deg: float = 7.5
    """Maximum deviation from a straight continuation at a junction."""

    side_cap: float = 0.9
    """A transition may cover at most this fraction of either segment."""

    min_transition_length: float = 1.0
    """Transitions shorter than this are skipped."""

    transition_step: float = 2.0
    """Target sub-segment length / width delta per sub-segment."""

    short_transition_length: float = 5.0
    """Transitions shorter than this use at most ``short_transition_segments``."""

    short_transition_segments: int = 6

    # ── DRC feedback ───────────────────────────────────────────────

    scale_floor: float = 0.1
    """Below this radius scale a corner reverts to a sharp joint."""

    yield_every: int = 5
    """Yield to the event loop after this many host creations."""

    # ── Derived helpers ────────────────────────────────────────────

    @property
    def collinear_cos(self) -> float:
        """Cosine threshold for the collinearity test."""
        return math.cos(math.radians(self.collinear_angle_deg))


# Module-level singleton, importable everywhere.
GEOMETRY_RULES = GeometryRules()
