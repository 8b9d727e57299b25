"""DRC feedback dataclasses and state enums."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from trace_beautify.pipeline.smoother import CornerState, RadiusPolicy, SmoothStats
from trace_beautify.pipeline.tracks import TracePath


class DrcState(Enum):
    OPTIMISTIC = "optimistic"   # first emission, every corner at full radius
    CHECKING = "checking"
    REPAIRING = "repairing"
    CLEAN = "clean"
    EXHAUSTED = "exhausted"


class DrcOutcome(Enum):
    CLEAN = "clean"                         # last check reported nothing
    EXHAUSTED = "exhausted"                 # retry budget spent
    UNRELATED = "unrelated"                 # violations not caused by our primitives
    DISABLED = "disabled"
    ORACLE_UNAVAILABLE = "oracle_unavailable"


@dataclass(frozen=True)
class EmitOptions:
    """How paths are smoothed on every (re-)emission."""

    policy: RadiusPolicy = field(default_factory=RadiusPolicy)
    force_arc: bool = True
    merge_uturns: bool = False


@dataclass
class PathContext:
    """One path being beautified plus everything emitted for it."""

    path: TracePath
    created_ids: list[str] = field(default_factory=list)
    id_to_corner: dict[str, int] = field(default_factory=dict)
    corner_states: dict[int, CornerState] = field(default_factory=dict)
    stats: SmoothStats = field(default_factory=SmoothStats)
    arcs_created: int = 0

    @property
    def forced_straight(self) -> int:
        return sum(1 for s in self.corner_states.values() if s.forced_straight)


@dataclass
class RepairDecision:
    """What one check did to the corner states."""

    paths: list[PathContext] = field(default_factory=list)
    halved: int = 0
    forced: int = 0


@dataclass
class FeedbackResult:
    outcome: DrcOutcome = DrcOutcome.DISABLED
    rounds: int = 0                 # oracle checks performed
    halved: int = 0                 # radius-halving decisions
    forced: int = 0                 # corners turned into sharp joints
    history: list[DrcState] = field(default_factory=list)
