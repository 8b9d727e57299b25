"""Tests for the HTTP API."""

from __future__ import annotations

import unittest

from fastapi.testclient import TestClient

from trace_beautify.host import Board, board_to_dict
from trace_beautify.session import Workspace
from trace_beautify.web import server
from tests.board_fixtures import make_l_board


class TestApi(unittest.TestCase):

    def setUp(self):
        server.configure(Workspace(board=make_l_board()))
        self.client = TestClient(server.app)

    def test_health(self):
        r = self.client.get("/api/health")
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()["status"], "ok")

    def test_get_board(self):
        data = self.client.get("/api/board").json()
        self.assertEqual(len(data["lines"]), 2)
        self.assertEqual(data["document_id"], "test-doc")

    def test_put_board(self):
        board = Board(document_id="other")
        r = self.client.put("/api/board", json=board_to_dict(board))
        self.assertEqual(r.json(), {"status": "ok", "primitives": 0})
        self.assertEqual(server.current_workspace().board.document_id, "other")

    def test_put_malformed_board(self):
        bad = {"lines": [{"start": [0, 0], "end": [1, 0], "width": 0}]}
        self.assertEqual(self.client.put("/api/board", json=bad).status_code, 400)
        self.assertEqual(self.client.put("/api/board", json={"lines": [{}]}).status_code, 400)

    def test_beautify_then_undo(self):
        r = self.client.post("/api/beautify", json={"scope": "all"})
        self.assertEqual(r.status_code, 200)
        report = r.json()
        self.assertEqual(report["arcs"], 1)
        self.assertEqual(report["drc_outcome"], "clean")
        self.assertEqual(len(self.client.get("/api/snapshots").json()), 2)

        r = self.client.post("/api/undo")
        self.assertEqual(r.json()["restored"], True)
        self.assertEqual(self.client.get("/api/board").json()["arcs"], [])

    def test_beautify_rejects_bad_scope(self):
        r = self.client.post("/api/beautify", json={"scope": "everything"})
        self.assertEqual(r.status_code, 422)

    def test_selection(self):
        ids = list(server.current_workspace().board.lines)
        r = self.client.post("/api/selection", json={"ids": ids[:1] + ["L999"]})
        self.assertEqual(r.json()["selected"], ids[:1])

    def test_undo_without_history(self):
        self.assertEqual(self.client.post("/api/undo").json(), {"restored": False})

    def test_drc(self):
        self.assertEqual(self.client.get("/api/drc").json(), {"violations": []})

    def test_settings(self):
        r = self.client.put("/api/settings", json={"corner_radius": 5.0, "enable_drc": False})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(self.client.get("/api/settings").json()["corner_radius"], 5.0)
        r = self.client.put("/api/settings", json={"drc_retry_count": -1})
        self.assertEqual(r.status_code, 400)
        r = self.client.put("/api/settings", json={"not_a_setting": 1})
        self.assertEqual(r.status_code, 400)

    def test_width_transitions(self):
        ws = server.current_workspace()
        self.client.put("/api/board", json={
            "lines": [
                {"start": [0, 0], "end": [100, 0], "width": 3.0, "net": "A"},
                {"start": [100, 0], "end": [200, 0], "width": 1.0, "net": "A"},
            ],
        })
        self.assertIsNot(server.current_workspace(), ws)
        r = self.client.post("/api/width-transitions", json={"scope": "all"})
        self.assertEqual(r.json()["created"], 1)
        r = self.client.delete("/api/width-transitions")
        self.assertEqual(r.json(), {"removed": 1})
        self.assertEqual(len(server.current_workspace().board.lines), 2)

    def test_snapshot_endpoints(self):
        snap = self.client.post("/api/snapshots", json={"name": "Manual"}).json()
        self.assertEqual(snap["lines"], 2)
        r = self.client.post(f"/api/snapshots/{snap['id']}/restore")
        self.assertEqual(r.json(), {"created": 2, "deleted": 2})
        self.assertEqual(self.client.post("/api/snapshots/99/restore").status_code, 404)
        self.assertEqual(self.client.delete("/api/snapshots/99").status_code, 404)
        self.assertEqual(self.client.delete(f"/api/snapshots/{snap['id']}").status_code, 200)
        self.client.post("/api/snapshots", json={})
        self.client.delete("/api/snapshots")
        self.assertEqual(self.client.get("/api/snapshots").json(), [])


if __name__ == "__main__":
    unittest.main()
