"""DRC — feedback controller that backs corner radii off on violations.

Submodules:
  models   DrcState, DrcOutcome, EmitOptions, PathContext, FeedbackResult.
  engine   commit_ops, emit_path, retract_path, apply_violations,
           run_feedback_loop.
"""

from .models import (
    DrcState, DrcOutcome, EmitOptions, PathContext, RepairDecision, FeedbackResult,
)
from .engine import (
    commit_ops, emit_path, retract_path, apply_violations, run_feedback_loop,
)

__all__ = [
    # Models
    "DrcState", "DrcOutcome", "EmitOptions", "PathContext", "RepairDecision",
    "FeedbackResult",
    # Engine
    "commit_ops", "emit_path", "retract_path", "apply_violations", "run_feedback_loop",
]
