"""
FastAPI web server — HTTP surface over one in-process board.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from trace_beautify import __version__
from trace_beautify.config import SettingsError, apply_debug_logging
from trace_beautify.host import Board, HostCallError, OracleError, board_to_dict, parse_board
from trace_beautify.pipeline.beautify import (
    add_width_transitions,
    beautify_routing,
    remove_transitions,
    undo_last_operation,
)
from trace_beautify.session import Workspace
from trace_beautify.snapshots import SnapshotNotFound


log = logging.getLogger(__name__)

# ── App ────────────────────────────────────────────────────────────

app = FastAPI(title="Trace Beautify", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Workspace state (persists across requests) ─────────────────────

_workspace: Workspace = Workspace(board=Board())


def configure(workspace: Workspace) -> None:
    """Serve *workspace* instead of the default empty board."""
    global _workspace
    _workspace = workspace
    apply_debug_logging(workspace.settings)


def current_workspace() -> Workspace:
    return _workspace


def _persist() -> None:
    try:
        _workspace.persist()
    except OSError as e:
        log.warning("Could not persist session: %s", e)


# ── Models ─────────────────────────────────────────────────────────

class ScopeRequest(BaseModel):
    scope: Literal["selected", "all"] = "all"


class SelectionRequest(BaseModel):
    ids: list[str]


class SnapshotRequest(BaseModel):
    name: str = "Manual"


# ── Board ──────────────────────────────────────────────────────────

@app.get("/api/health")
async def health():
    return {"status": "ok", "version": __version__}


@app.get("/api/board")
async def get_board():
    return board_to_dict(_workspace.board)


@app.put("/api/board")
async def put_board(data: dict[str, Any]):
    """Replace the board.  Side tables, registry and history start fresh."""
    global _workspace
    try:
        board = parse_board(data)
    except (KeyError, TypeError, ValueError, HostCallError) as e:
        raise HTTPException(400, f"Malformed board: {e}")
    _workspace = Workspace(
        board=board,
        settings=_workspace.settings,
        session=_workspace.session,
        drc_report=_workspace.drc_report,
    )
    _persist()
    return {"status": "ok", "primitives": len(board)}


@app.post("/api/selection")
async def set_selection(req: SelectionRequest):
    _workspace.board.select(req.ids)
    return {"selected": sorted(_workspace.board.selection)}


@app.get("/api/drc")
async def run_drc():
    try:
        violations = await _workspace.oracle().check()
    except OracleError as e:
        raise HTTPException(502, f"DRC unavailable: {e}")
    return {"violations": sorted(violations)}


# ── Passes ─────────────────────────────────────────────────────────

@app.post("/api/beautify")
async def beautify(req: ScopeRequest):
    ws = _workspace
    report = await beautify_routing(
        req.scope, ws.board, ws.board, ws.oracle(), ws.settings,
        snapshots=ws.snapshots,
        arc_widths=ws.arc_widths,
        registry=ws.registry,
    )
    if ws.session is not None:
        ws.session.record("beautify", report.to_dict())
    _persist()
    return report.to_dict()


@app.post("/api/width-transitions")
async def width_transitions(req: ScopeRequest):
    ws = _workspace
    stats = await add_width_transitions(
        req.scope, ws.board, ws.board, ws.settings,
        registry=ws.registry,
        snapshots=ws.snapshots,
        arc_widths=ws.arc_widths,
    )
    _persist()
    return {
        "junctions": stats.junctions,
        "created": stats.created,
        "replaced": stats.replaced,
        "skipped": stats.skipped,
        "cleared": stats.cleared,
        "failed_calls": stats.failed_calls,
    }


@app.delete("/api/width-transitions")
async def delete_width_transitions():
    ws = _workspace
    removed = await remove_transitions(ws.board, ws.registry, ws.arc_widths)
    _persist()
    return {"removed": removed}


@app.post("/api/undo")
async def undo():
    ws = _workspace
    diff = await undo_last_operation(ws.snapshots, ws.registry)
    if diff is None:
        return {"restored": False}
    _persist()
    return {"restored": True, "created": len(diff.created), "deleted": len(diff.deleted)}


# ── Settings ───────────────────────────────────────────────────────

@app.get("/api/settings")
async def get_settings():
    return _workspace.settings.to_dict()


@app.put("/api/settings")
async def put_settings(changes: dict[str, Any]):
    try:
        _workspace.settings = _workspace.settings.updated(**changes)
    except (SettingsError, TypeError) as e:
        raise HTTPException(400, str(e))
    apply_debug_logging(_workspace.settings)
    _persist()
    return _workspace.settings.to_dict()


# ── Snapshots ──────────────────────────────────────────────────────

@app.get("/api/snapshots")
async def list_snapshots():
    return [s.summary() for s in _workspace.snapshots.list()]


@app.post("/api/snapshots")
async def create_snapshot(req: SnapshotRequest):
    snap = await _workspace.snapshots.capture(req.name)
    return snap.summary()


@app.post("/api/snapshots/{snapshot_id}/restore")
async def restore_snapshot(snapshot_id: int):
    ws = _workspace
    try:
        diff = await ws.snapshots.restore(snapshot_id)
    except SnapshotNotFound:
        raise HTTPException(404, f"Snapshot {snapshot_id} not found")
    ws.registry.clear()
    _persist()
    return {"created": len(diff.created), "deleted": len(diff.deleted)}


@app.delete("/api/snapshots/{snapshot_id}")
async def delete_snapshot(snapshot_id: int):
    try:
        _workspace.snapshots.delete(snapshot_id)
    except SnapshotNotFound:
        raise HTTPException(404, f"Snapshot {snapshot_id} not found")
    return {"status": "ok"}


@app.delete("/api/snapshots")
async def clear_snapshots():
    _workspace.snapshots.clear()
    return {"status": "ok"}


def main(host: str = "127.0.0.1", port: int = 8000):
    import uvicorn
    uvicorn.run(app, host=host, port=port, reload=False)


if __name__ == "__main__":
    main()
