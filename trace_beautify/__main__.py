"""
Trace Beautify — entry point.

Usage:
    python -m trace_beautify serve [--port 8000] [--session ID]
    python -m trace_beautify beautify --board board.json [--scope all]
    python -m trace_beautify transitions --session ID [--remove]
    python -m trace_beautify undo --session ID

``--board`` imports a board JSON into a new session; ``--session`` reuses
an existing one (and its undo history).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from trace_beautify.config import apply_debug_logging, load_settings
from trace_beautify.host import board_to_dict, parse_board
from trace_beautify.pipeline.beautify import (
    add_width_transitions,
    beautify_routing,
    remove_transitions,
    undo_last_operation,
)
from trace_beautify.session import (
    BOARD_FILE,
    Workspace,
    create_session,
    load_session,
    open_workspace,
)


log = logging.getLogger("trace_beautify")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="trace_beautify",
        description="Arc smoothing, width transitions and DRC back-off for PCB traces",
    )
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = p.add_subparsers(dest="cmd", required=True)

    src = argparse.ArgumentParser(add_help=False)
    grp = src.add_mutually_exclusive_group(required=True)
    grp.add_argument("--session", help="Existing session id")
    grp.add_argument("--board", type=Path, help="Board JSON to import into a new session")
    src.add_argument("--settings", type=Path, default=None, help="Settings JSON (overrides the session's)")
    src.add_argument("--out", type=Path, default=None, help="Also write the resulting board here")

    b = sub.add_parser("beautify", parents=[src], help="Smooth corners (with DRC feedback)")
    b.add_argument("--scope", choices=["all", "selected"], default="all")
    b.add_argument("--no-drc", action="store_true", help="Skip the design-rule feedback loop")

    t = sub.add_parser("transitions", parents=[src], help="Add width transitions")
    t.add_argument("--scope", choices=["all", "selected"], default="all")
    t.add_argument("--remove", action="store_true", help="Remove all generated transitions instead")

    sub.add_parser("undo", parents=[src], help="Restore the state before the last pass")

    sv = sub.add_parser("serve", help="Start the HTTP API")
    sv.add_argument("--host", default="127.0.0.1", help="Host to bind")
    sv.add_argument("--port", type=int, default=8000, help="Port to bind")
    sv.add_argument("--session", default=None, help="Serve an existing session")

    return p


def _open(args: argparse.Namespace) -> Workspace:
    if args.session:
        session = load_session(args.session)
        if session is None:
            raise SystemExit(f"Unknown session: {args.session}")
    else:
        data = json.loads(args.board.read_text(encoding="utf-8"))
        session = create_session(description=f"imported from {args.board.name}")
        session.write_artifact(BOARD_FILE, board_to_dict(parse_board(data)))
        print(f"Session {session.id}")
    ws = open_workspace(session)
    if getattr(args, "settings", None) is not None:
        ws.settings = load_settings(args.settings)
    return ws


def _finish(ws: Workspace, args: argparse.Namespace) -> None:
    ws.persist()
    if getattr(args, "out", None) is not None:
        args.out.write_text(json.dumps(board_to_dict(ws.board), indent=2), encoding="utf-8")
        print(f"Board written to {args.out}")


async def _run(args: argparse.Namespace) -> int:
    ws = _open(args)
    apply_debug_logging(ws.settings)
    if args.verbose:
        log.setLevel(logging.DEBUG)

    if args.cmd == "beautify":
        settings = ws.settings
        if args.no_drc:
            settings = settings.updated(enable_drc=False)
        report = await beautify_routing(
            args.scope, ws.board, ws.board, ws.oracle(), settings,
            snapshots=ws.snapshots, arc_widths=ws.arc_widths, registry=ws.registry,
        )
        ws.session.record("beautify", report.to_dict())
        print(json.dumps(report.to_dict(), indent=2))

    elif args.cmd == "transitions":
        if args.remove:
            removed = await remove_transitions(ws.board, ws.registry, ws.arc_widths)
            print(f"Removed {removed} transitions")
        else:
            stats = await add_width_transitions(
                args.scope, ws.board, ws.board, ws.settings,
                registry=ws.registry, snapshots=ws.snapshots, arc_widths=ws.arc_widths,
            )
            print(f"{stats.created} transitions created ({stats.replaced} replaced, "
                  f"{stats.skipped} skipped)")

    elif args.cmd == "undo":
        diff = await undo_last_operation(ws.snapshots, ws.registry)
        if diff is None:
            print("Nothing to undo")
            return 1
        print(f"Restored: {len(diff.deleted)} deleted, {len(diff.created)} created")

    _finish(ws, args)
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )
    if args.verbose:
        log.setLevel(logging.DEBUG)

    if args.cmd == "serve":
        from trace_beautify.web.server import configure, main as serve_main
        if args.session:
            session = load_session(args.session)
            if session is None:
                print(f"Unknown session: {args.session}")
                return 1
            configure(open_workspace(session))
        serve_main(host=args.host, port=args.port)
        return 0

    return asyncio.run(_run(args))


if __name__ == "__main__":
    sys.exit(main())
