"""Guarded host writes.

Every create/delete is awaited on its own so one rejected call never
aborts a pass: the failure is logged and counted, and the caller carries
on with a partially applied result.
"""

from __future__ import annotations

import asyncio
import logging

from trace_beautify.geometry import Point
from trace_beautify.pipeline.config import GEOMETRY_RULES

from .arc_widths import ArcWidthTable
from .protocols import PrimitiveSink


log = logging.getLogger(__name__)


class HostWriter:
    """Wraps a PrimitiveSink with per-call error handling.

    Arc widths are written to the side table as arcs are created.  After
    every ``yield_every`` creations control is handed back to the event
    loop so a long pass does not starve the host.
    """

    def __init__(
        self,
        sink: PrimitiveSink,
        arc_widths: ArcWidthTable | None = None,
        yield_every: int = GEOMETRY_RULES.yield_every,
    ) -> None:
        self.sink = sink
        self.arc_widths = arc_widths if arc_widths is not None else ArcWidthTable()
        self.yield_every = max(1, yield_every)
        self.created = 0
        self.deleted = 0
        self.failed_calls = 0

    @property
    def document_id(self) -> str:
        return self.sink.document_id

    async def _tick(self) -> None:
        self.created += 1
        if self.created % self.yield_every == 0:
            await asyncio.sleep(0)

    async def line(self, net: str, layer: int, start: Point, end: Point, width: float) -> str | None:
        try:
            new_id = await self.sink.create_line(
                net, layer, start[0], start[1], end[0], end[1], width,
            )
        except Exception as e:
            self.failed_calls += 1
            log.warning("Host: create line %s (%.3f,%.3f)→(%.3f,%.3f) failed: %s",
                        net, start[0], start[1], end[0], end[1], e)
            return None
        await self._tick()
        return new_id

    async def arc(
        self, net: str, layer: int,
        start: Point, end: Point, sweep_deg: float, width: float,
    ) -> str | None:
        try:
            new_id = await self.sink.create_arc(
                net, layer, start[0], start[1], end[0], end[1], sweep_deg, width,
            )
        except Exception as e:
            self.failed_calls += 1
            log.warning("Host: create arc %s (%.3f,%.3f)→(%.3f,%.3f) %.1f° failed: %s",
                        net, start[0], start[1], end[0], end[1], sweep_deg, e)
            return None
        self.arc_widths.record(self.document_id, new_id, width)
        await self._tick()
        return new_id

    async def delete_each(self, ids: list[str]) -> int:
        """Delete primitives one call at a time.  Returns how many succeeded."""
        ok = 0
        for pid in ids:
            try:
                await self.sink.delete([pid])
            except Exception as e:
                self.failed_calls += 1
                log.warning("Host: delete %s failed: %s", pid, e)
                continue
            ok += 1
        self.deleted += ok
        return ok
