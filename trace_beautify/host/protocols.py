"""External collaborator interfaces.

The engine never talks to a concrete editor.  It needs somewhere to
create and delete primitives, something that says which primitives
violate design rules, a source of raw segments and (for undo) a
snapshot store.  Each is a structural ``Protocol`` so any adapter with
matching async methods plugs in.
"""

from __future__ import annotations

from typing import Literal, Protocol, runtime_checkable

from trace_beautify.pipeline.tracks import Segment

from .models import ArcPrimitive, LinePrimitive


Scope = Literal["selected", "all"]


class HostCallError(RuntimeError):
    """A single create/delete call was rejected by the host."""


class OracleError(RuntimeError):
    """The violation oracle could not produce a result."""


@runtime_checkable
class PrimitiveSink(Protocol):
    """Creates and deletes line/arc primitives.  Calls fail independently."""

    @property
    def document_id(self) -> str: ...

    async def create_line(
        self, net: str, layer: int,
        x1: float, y1: float, x2: float, y2: float,
        width: float,
    ) -> str: ...

    async def create_arc(
        self, net: str, layer: int,
        x1: float, y1: float, x2: float, y2: float,
        sweep_deg: float, width: float,
    ) -> str: ...

    async def delete(self, ids: list[str]) -> None: ...


@runtime_checkable
class ViolationOracle(Protocol):
    """Runs a design-rule check; returns the implicated primitive ids."""

    async def check(self) -> set[str]: ...


@runtime_checkable
class SegmentSource(Protocol):
    """Yields typed segments for the selection or the whole board.

    Polylines arrive pre-exploded, each piece carrying ``origin_id``.
    """

    async def segments(self, scope: Scope) -> list[Segment]: ...


@runtime_checkable
class PrimitiveReader(Protocol):
    """Read access to every line and arc (used by snapshots)."""

    async def all_lines(self) -> list[LinePrimitive]: ...

    async def all_arcs(self) -> list[ArcPrimitive]: ...
