"""Side table of the true width of emitted arcs.

Some hosts report a stale width for an arc right after it is created.
Whoever emits the arc records the width here, keyed by document and
primitive id, and readers (snapshots) consult the table before the host.
The table is owned by the caller and passed explicitly.
"""

from __future__ import annotations


class ArcWidthTable:
    """(document id, primitive id) → width."""

    def __init__(self) -> None:
        self._widths: dict[tuple[str, str], float] = {}

    def record(self, document_id: str, arc_id: str, width: float) -> None:
        self._widths[(document_id, arc_id)] = width

    def get(self, document_id: str, arc_id: str, default: float | None = None) -> float | None:
        return self._widths.get((document_id, arc_id), default)

    def forget(self, document_id: str, arc_ids: list[str]) -> None:
        for aid in arc_ids:
            self._widths.pop((document_id, aid), None)

    def __len__(self) -> int:
        return len(self._widths)

    def __contains__(self, key: tuple[str, str]) -> bool:
        return key in self._widths
