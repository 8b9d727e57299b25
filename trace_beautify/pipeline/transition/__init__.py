"""Transition — smootherstep width tapers at collinear width changes.

Submodules:
  models   TransitionJunction, TransitionProfile, TransitionRecord,
           TransitionRegistry, TransitionStats.
  engine   find_junctions, build_profile, apply_width_transitions,
           remove_width_transitions.
"""

from .models import (
    TransitionJunction, TransitionPiece, TransitionProfile,
    TransitionRecord, TransitionRegistry, TransitionStats,
)
from .engine import (
    find_junctions, build_profile,
    apply_width_transitions, remove_width_transitions,
)

__all__ = [
    # Models
    "TransitionJunction", "TransitionPiece", "TransitionProfile",
    "TransitionRecord", "TransitionRegistry", "TransitionStats",
    # Engine
    "find_junctions", "build_profile",
    "apply_width_transitions", "remove_width_transitions",
]
