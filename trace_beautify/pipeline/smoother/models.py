"""Corner smoother dataclasses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from trace_beautify.geometry import Point


@dataclass(frozen=True)
class RadiusPolicy:
    """How the nominal corner radius is chosen.

    A fixed radius wins when set; otherwise the radius is the wider of the
    two adjacent trace widths times ``ratio``.
    """

    ratio: float = 3.0
    fixed: float | None = None

    def nominal(self, *widths: float) -> float:
        if self.fixed is not None:
            return self.fixed
        return max(widths) * self.ratio


@dataclass
class CornerState:
    """DRC-driven adjustment for one corner of one path."""

    scale: float = 1.0              # fraction of the nominal radius in effect
    forced_straight: bool = False   # permanently a sharp joint

    @property
    def adjusted(self) -> bool:
        return self.forced_straight or self.scale < 1.0


@dataclass
class PathOp:
    """One drawing instruction derived from a path."""

    kind: Literal["line", "arc"]
    start: Point
    end: Point
    width: float
    corner_index: int | None        # interior point that produced it; None = tail
    sweep_deg: float | None = None  # signed, arcs only

    @property
    def is_arc(self) -> bool:
        return self.kind == "arc"


@dataclass
class CornerFit:
    """Tangent-circle fit for a single vertex."""

    angle_rad: float
    tangent: float          # ideal tangent length d
    actual_tangent: float   # after the leg clamp
    effective_radius: float
    clamped: bool
    accepted: bool
    start: Point | None = None
    end: Point | None = None
    sweep_deg: float | None = None
    reason: str = ""


@dataclass
class SmoothStats:
    arcs: int = 0
    clamped: int = 0        # corners whose radius had to shrink to fit
    merged: int = 0         # U-turn pairs replaced by one arc
    sharp: int = 0          # corners left as sharp joints
    degenerate: int = 0     # corners skipped after an unexpected error


@dataclass
class SmoothResult:
    ops: list[PathOp] = field(default_factory=list)
    stats: SmoothStats = field(default_factory=SmoothStats)

    @property
    def corner_map(self) -> dict[int, int]:
        """Op position → corner index, for ops attributable to a corner."""
        return {
            pos: op.corner_index
            for pos, op in enumerate(self.ops)
            if op.corner_index is not None
        }
