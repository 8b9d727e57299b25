"""Tracks — segment model, net/layer grouping and path extraction.

Submodules:
  models        Segment, TracePath, SegmentGroup.
  extract       point_key, group_segments, extract_paths, explode_polyline.
  serialization JSON conversion.
"""

from .models import Segment, TracePath, SegmentGroup
from .extract import point_key, group_segments, extract_paths, explode_polyline
from .serialization import segment_to_dict, parse_segment, path_to_dict

__all__ = [
    # Models
    "Segment", "TracePath", "SegmentGroup",
    # Extraction
    "point_key", "group_segments", "extract_paths", "explode_polyline",
    # Serialization
    "segment_to_dict", "parse_segment", "path_to_dict",
]
