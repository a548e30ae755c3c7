import threading
import time
import unittest
from unittest.mock import patch

import chess

import server
from clickchess.random_opponent import RandomOpponent


class ServerTests(unittest.TestCase):
    def setUp(self):
        self.client = server.app.test_client()
        self.factory = patch("server._opponent_factory", lambda: RandomOpponent(seed=7))
        self.factory.start()
        self.addCleanup(self.factory.stop)

    def _create(self, **payload) -> dict:
        rsp = self.client.post("/api/sessions", json=payload)
        self.assertEqual(rsp.status_code, 201)
        body = rsp.get_json()
        self.addCleanup(self.client.delete, f"/api/sessions/{body['session_id']}")
        return body

    def _wait_idle(self, sid: str) -> dict:
        deadline = time.time() + 5
        body = self.client.get(f"/api/sessions/{sid}").get_json()
        while body["thinking"] and time.time() < deadline:
            time.sleep(0.02)
            body = self.client.get(f"/api/sessions/{sid}").get_json()
        return body

    def test_click_flow_human_vs_human(self):
        body = self._create(mode="human-vs-human")
        sid = body["session_id"]
        self.assertEqual(body["fen"], chess.STARTING_FEN)
        body = self.client.post(f"/api/sessions/{sid}/click", json={"square": "e2"}).get_json()
        self.assertEqual(body["selected_square"], "e2")
        self.assertIn("background", body["square_styles"]["e4"])
        self.assertEqual(body["highlights"]["e2"], "origin")
        body = self.client.post(f"/api/sessions/{sid}/click", json={"square": "e4"}).get_json()
        self.assertTrue(body["accepted"])
        self.assertEqual(body["side_to_move"], "black")
        self.assertEqual(body["square_styles"], {})

    def test_opponent_moves_first_for_black_human(self):
        body = self._create(mode="human-vs-cpu", human_side="black")
        body = self._wait_idle(body["session_id"])
        self.assertEqual(body["side_to_move"], "black")
        self.assertEqual(len(body["move_history"]), 1)
        self.assertTrue(body["input_accepted"])

    def test_reset_and_context(self):
        sid = self._create()["session_id"]
        self.client.post(f"/api/sessions/{sid}/click", json={"square": "g1"})
        self.client.post(f"/api/sessions/{sid}/click", json={"square": "f3"})
        ctx = self.client.get(f"/api/sessions/{sid}/assistant-context").get_json()
        self.assertEqual(ctx["lastMove"], "Nf3")
        body = self.client.post(f"/api/sessions/{sid}/reset").get_json()
        self.assertEqual(body["move_history"], [])

    def test_bad_requests(self):
        self.assertEqual(self.client.get("/api/sessions/nope").status_code, 404)
        self.assertEqual(self.client.post("/api/sessions", json={"mode": "online"}).status_code, 400)
        rsp = self.client.post("/api/sessions", json={"mode": "human-vs-cpu", "human_side": "purple"})
        self.assertEqual(rsp.status_code, 400)
        sid = self._create()["session_id"]
        self.assertEqual(self.client.post(f"/api/sessions/{sid}/click", json={}).status_code, 400)

    def test_delete_ends_session(self):
        body = self.client.post("/api/sessions", json={"mode": "human-vs-opponent"}).get_json()
        sid = body["session_id"]
        self.assertEqual(self.client.delete(f"/api/sessions/{sid}").status_code, 200)
        self.assertEqual(self.client.get(f"/api/sessions/{sid}").status_code, 404)


    def test_engine_start_and_shutdown_stay_off_the_session_loop(self):
        threads = {}

        class RecordingOpponent(RandomOpponent):
            def __init__(self):
                threads["start"] = threading.current_thread().name
                super().__init__(seed=3)

            def close(self):
                threads["close"] = threading.current_thread().name

        with patch("server._opponent_factory", RecordingOpponent):
            sid = self.client.post("/api/sessions", json={"mode": "human-vs-opponent"}).get_json()["session_id"]
        self.assertEqual(self.client.delete(f"/api/sessions/{sid}").status_code, 200)
        deadline = time.time() + 5
        while "close" not in threads and time.time() < deadline:
            time.sleep(0.02)
        self.assertNotEqual(threads["start"], "clickchess-loop")
        self.assertIn("close", threads)
        self.assertNotEqual(threads["close"], "clickchess-loop")


if __name__ == "__main__":
    unittest.main()
