"""Width-transition dataclasses and the coordinate-keyed registry."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from trace_beautify.geometry import Point
from trace_beautify.pipeline.tracks import Segment, parse_segment, point_key, segment_to_dict


@dataclass
class TransitionJunction:
    """Two collinear, differently wide segments meeting at ``point``."""

    point: Point
    key: str
    wide: Segment
    narrow: Segment
    direction: Point        # unit vector from the junction into the narrow side

    @property
    def width_delta(self) -> float:
        return self.wide.width - self.narrow.width


@dataclass
class TransitionPiece:
    start: Point
    end: Point
    width: float


@dataclass
class TransitionProfile:
    """Tapered run from the wide side across the junction into the narrow side."""

    total_length: float
    wide_length: float          # portion laid over the (shortened) wide segment
    narrow_length: float        # portion laid over the narrow segment
    wide_width: float
    narrow_width: float
    pieces: list[TransitionPiece] = field(default_factory=list)

    @property
    def start(self) -> Point:
        return self.pieces[0].start

    @property
    def end(self) -> Point:
        return self.pieces[-1].end


@dataclass
class TransitionRecord:
    """What one junction left on the board.

    ``ids`` are the taper pieces.  When the wide segment was shortened,
    ``wide_id`` is its current host id and ``trimmed_to`` the end point it
    was pulled back to (the original end being ``junction``).
    """

    key: str
    junction: Point
    net: str
    layer: int
    ids: list[str] = field(default_factory=list)
    wide_id: str | None = None
    trimmed_to: Point | None = None

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "junction": list(self.junction),
            "net": self.net,
            "layer": self.layer,
            "ids": list(self.ids),
            "wide_id": self.wide_id,
            "trimmed_to": list(self.trimmed_to) if self.trimmed_to is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> TransitionRecord:
        trimmed = data.get("trimmed_to")
        return cls(
            key=data["key"],
            junction=Point(*data["junction"]),
            net=data.get("net", ""),
            layer=int(data.get("layer", 1)),
            ids=[str(i) for i in data.get("ids", [])],
            wide_id=data.get("wide_id"),
            trimmed_to=Point(*trimmed) if trimmed is not None else None,
        )


class TransitionRegistry:
    """Every transition generated so far, keyed by junction coordinate.

    Also tracks the current geometry of each wide segment this registry
    shortened, so a segment trimmed at one or both ends can be restored
    without asking the host.
    """

    def __init__(self) -> None:
        self.records: dict[str, TransitionRecord] = {}
        self.wide_segments: dict[str, Segment] = {}

    def __len__(self) -> int:
        return len(self.records)

    def __contains__(self, key: str) -> bool:
        return key in self.records

    def get(self, key: str) -> TransitionRecord | None:
        return self.records.get(key)

    def add(self, record: TransitionRecord) -> None:
        self.records[record.key] = record

    def pop(self, key: str) -> TransitionRecord | None:
        return self.records.pop(key, None)

    def clear(self) -> None:
        self.records.clear()
        self.wide_segments.clear()

    @property
    def piece_ids(self) -> set[str]:
        return {pid for r in self.records.values() for pid in r.ids}

    # ── wide segment bookkeeping ───────────────────────────────────

    def records_for_wide(self, wide_id: str) -> list[TransitionRecord]:
        return [r for r in self.records.values() if r.wide_id == wide_id]

    def replace_wide(self, old_id: str, new_seg: Segment | None) -> None:
        """The host primitive *old_id* was replaced by *new_seg* (or removed)."""
        self.wide_segments.pop(old_id, None)
        for r in self.records_for_wide(old_id):
            if new_seg is None:
                r.wide_id = None
                r.trimmed_to = None
            else:
                r.wide_id = new_seg.id
        if new_seg is not None and self.records_for_wide(new_seg.id):
            self.wide_segments[new_seg.id] = new_seg

    def drop_wide(self, wide_id: str) -> list[TransitionRecord]:
        """Forget every record that shortened *wide_id* and return them."""
        dropped = self.records_for_wide(wide_id)
        for r in dropped:
            self.records.pop(r.key, None)
        self.wide_segments.pop(wide_id, None)
        return dropped

    def untrimmed(self, seg: Segment, precision: int = 3) -> Segment:
        """*seg* with every end this registry trimmed moved back to its junction."""
        start, end = seg.start, seg.end
        for r in self.records_for_wide(seg.id):
            if r.trimmed_to is None:
                continue
            tk = point_key(r.trimmed_to, precision)
            if point_key(start, precision) == tk:
                start = r.junction
            elif point_key(end, precision) == tk:
                end = r.junction
        if start is seg.start and end is seg.end:
            return seg
        return replace(seg, start=start, end=end)

    # ── persistence ────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "records": [r.to_dict() for r in self.records.values()],
            "wide_segments": [segment_to_dict(s) for s in self.wide_segments.values()],
        }

    @classmethod
    def from_dict(cls, data: dict | None) -> TransitionRegistry:
        reg = cls()
        if not data:
            return reg
        for item in data.get("records", []):
            rec = TransitionRecord.from_dict(item)
            reg.records[rec.key] = rec
        for item in data.get("wide_segments", []):
            seg = parse_segment(item)
            reg.wide_segments[seg.id] = seg
        return reg


@dataclass
class TransitionStats:
    junctions: int = 0      # collinear width changes found
    created: int = 0        # transitions laid down this run
    replaced: int = 0       # earlier transitions removed before regenerating
    skipped: int = 0        # junctions too short for a taper
    cleared: int = 0        # old tapers whose segments meet but no longer qualify
    degenerate: int = 0     # junctions abandoned after an unexpected error
    failed_calls: int = 0   # host calls rejected during the run
