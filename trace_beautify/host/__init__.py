"""Host layer — the boundary between the engine and an editor.

Submodules:
  protocols   PrimitiveSink, ViolationOracle, SegmentSource, PrimitiveReader.
  models      LinePrimitive, ArcPrimitive, PolylinePrimitive.
  arc_widths  ArcWidthTable (true width of emitted arcs).
  writer      HostWriter (per-call guarded creates/deletes).
  board       In-memory reference Board + JSON.
  clearance   ClearanceOracle (shapely), ReportOracle, flatten_drc_report.
"""

from .protocols import (
    Scope, HostCallError, OracleError,
    PrimitiveSink, ViolationOracle, SegmentSource, PrimitiveReader,
)
from .models import LinePrimitive, ArcPrimitive, PolylinePrimitive
from .arc_widths import ArcWidthTable
from .writer import HostWriter
from .board import Board, board_to_dict, parse_board
from .clearance import ClearanceOracle, ReportOracle, flatten_drc_report

__all__ = [
    # Protocols
    "Scope", "HostCallError", "OracleError",
    "PrimitiveSink", "ViolationOracle", "SegmentSource", "PrimitiveReader",
    # Models
    "LinePrimitive", "ArcPrimitive", "PolylinePrimitive",
    # Helpers
    "ArcWidthTable", "HostWriter",
    # Reference host
    "Board", "board_to_dict", "parse_board",
    "ClearanceOracle", "ReportOracle", "flatten_drc_report",
]
