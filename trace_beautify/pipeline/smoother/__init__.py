"""Smoother — tangent-arc corner fitting with U-turn merging.

Submodules:
  models   RadiusPolicy, CornerState, PathOp, CornerFit, SmoothResult.
  engine   fit_corner, generate_path_ops.
"""

from .models import RadiusPolicy, CornerState, PathOp, CornerFit, SmoothStats, SmoothResult
from .engine import fit_corner, generate_path_ops

__all__ = [
    # Models
    "RadiusPolicy", "CornerState", "PathOp", "CornerFit", "SmoothStats", "SmoothResult",
    # Engine
    "fit_corner", "generate_path_ops",
]
