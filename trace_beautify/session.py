"""
Session management — each session is a folder on disk holding one board
and everything the engine remembers about it between passes.

Sessions are identified by a short ID (timestamp-based) and stored under
  <TRACE_BEAUTIFY_HOME or ./outputs>/sessions/<session_id>/

A session folder contains:
  session.json     — metadata (created, last_modified, description, history)
  board.json       — lines, arcs, polylines and selection
  settings.json    — BeautifySettings
  transitions.json — transition registry
  snapshots.json   — undo history

``Workspace`` is the live, in-memory view of a session: the board plus
the side tables, registry and snapshot store wired to it.
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

from trace_beautify.config import BeautifySettings, settings_from_dict
from trace_beautify.host import (
    ArcWidthTable,
    Board,
    ClearanceOracle,
    ReportOracle,
    ViolationOracle,
    board_to_dict,
    parse_board,
)
from trace_beautify.pipeline.transition import TransitionRegistry
from trace_beautify.snapshots import SnapshotStore


log = logging.getLogger(__name__)

SESSIONS_DIR = Path(os.environ.get("TRACE_BEAUTIFY_HOME", "outputs")) / "sessions"

BOARD_FILE = "board.json"
SETTINGS_FILE = "settings.json"
TRANSITIONS_FILE = "transitions.json"
SNAPSHOTS_FILE = "snapshots.json"


@dataclass
class Session:
    id: str
    path: Path
    created: str                         # ISO 8601
    last_modified: str                   # ISO 8601
    description: str = ""
    history: list[dict] = field(default_factory=list)  # one entry per pass

    def save(self) -> None:
        """Persist session metadata to session.json."""
        self.last_modified = datetime.now(timezone.utc).isoformat()
        self.path.mkdir(parents=True, exist_ok=True)
        meta = {
            "id": self.id,
            "created": self.created,
            "last_modified": self.last_modified,
            "description": self.description,
            "history": self.history,
        }
        (self.path / "session.json").write_text(
            json.dumps(meta, indent=2), encoding="utf-8")

    def write_artifact(self, filename: str, data: Any) -> Path:
        """Write a JSON artifact to the session folder."""
        p = self.path / filename
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        self.save()  # update last_modified
        return p

    def read_artifact(self, filename: str) -> Any | None:
        """Read a JSON artifact from the session folder. Returns None if missing."""
        p = self.path / filename
        if not p.exists():
            return None
        return json.loads(p.read_text(encoding="utf-8"))

    def record(self, operation: str, summary: dict) -> None:
        """Append a pass summary to the session history."""
        self.history.append({
            "operation": operation,
            "at": datetime.now(timezone.utc).isoformat(),
            **summary,
        })
        self.save()


def _generate_session_id() -> str:
    """Generate a short, unique, human-readable session ID."""
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def create_session(description: str = "", root: Path | None = None) -> Session:
    """Create a new session with a fresh folder on disk."""
    base = root or SESSIONS_DIR
    sid = _generate_session_id()
    path = base / sid

    # Avoid collision (rare but possible if called twice in same second)
    while path.exists():
        time.sleep(0.1)
        sid = _generate_session_id()
        path = base / sid

    now = datetime.now(timezone.utc).isoformat()
    session = Session(
        id=sid,
        path=path,
        created=now,
        last_modified=now,
        description=description,
    )
    session.save()
    return session


def load_session(session_id: str, root: Path | None = None) -> Session | None:
    """Load an existing session by ID. Returns None if not found."""
    path = (root or SESSIONS_DIR) / session_id
    meta_path = path / "session.json"
    if not meta_path.exists():
        return None
    try:
        meta = json.loads(meta_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return None
    return Session(
        id=meta["id"],
        path=path,
        created=meta["created"],
        last_modified=meta["last_modified"],
        description=meta.get("description", ""),
        history=meta.get("history", []),
    )


def list_sessions(root: Path | None = None) -> list[dict]:
    """List all sessions, newest first. Returns lightweight metadata dicts."""
    base = root or SESSIONS_DIR
    sessions = []
    if not base.exists():
        return sessions
    for d in sorted(base.iterdir(), reverse=True):
        if not d.is_dir():
            continue
        meta_path = d / "session.json"
        if not meta_path.exists():
            continue
        try:
            meta = json.loads(meta_path.read_text(encoding="utf-8"))
            sessions.append({
                "id": meta["id"],
                "created": meta["created"],
                "last_modified": meta["last_modified"],
                "description": meta.get("description", ""),
                "passes": len(meta.get("history", [])),
            })
        except (json.JSONDecodeError, OSError):
            continue
    return sessions


# ── Workspace ──────────────────────────────────────────────────────


@dataclass
class Workspace:
    """A board with its settings, side tables and undo history.

    ``drc_report`` plugs in a host DRC engine (an async callable returning
    its raw category tree); without one the built-in clearance check runs.
    """

    board: Board
    settings: BeautifySettings = field(default_factory=BeautifySettings)
    registry: TransitionRegistry = field(default_factory=TransitionRegistry)
    arc_widths: ArcWidthTable = field(default_factory=ArcWidthTable)
    snapshots: SnapshotStore | None = None
    session: Session | None = None
    drc_report: Callable[[], Awaitable[object]] | None = None

    def __post_init__(self) -> None:
        if self.snapshots is None:
            self.snapshots = SnapshotStore(self.board, self.board, self.arc_widths)

    def oracle(self) -> ViolationOracle:
        if self.drc_report is not None:
            return ReportOracle(self.drc_report, self.settings.drc_ignore_copper_pour)
        return ClearanceOracle(self.board, clearance=self.settings.drc_clearance)

    def persist(self) -> None:
        """Write board, settings, registry and snapshots to the session."""
        if self.session is None:
            return
        self.session.write_artifact(BOARD_FILE, board_to_dict(self.board))
        self.session.write_artifact(SETTINGS_FILE, self.settings.to_dict())
        self.session.write_artifact(TRANSITIONS_FILE, self.registry.to_dict())
        self.session.write_artifact(SNAPSHOTS_FILE, self.snapshots.to_dict())


def open_workspace(session: Session) -> Workspace:
    """Load a session's artifacts into a Workspace (missing ones start empty)."""
    board_data = session.read_artifact(BOARD_FILE)
    board = parse_board(board_data) if board_data else Board()
    ws = Workspace(
        board=board,
        settings=settings_from_dict(session.read_artifact(SETTINGS_FILE)),
        registry=TransitionRegistry.from_dict(session.read_artifact(TRANSITIONS_FILE)),
        session=session,
    )
    ws.snapshots.load_dict(session.read_artifact(SNAPSHOTS_FILE))
    ws.snapshots.subscribe(
        lambda store: session.write_artifact(SNAPSHOTS_FILE, store.to_dict()))
    log.info("Session %s: %d primitives, %d transitions, %d snapshots",
             session.id, len(board), len(ws.registry), len(ws.snapshots))
    return ws
