from __future__ import annotations

import logging
import os
import unittest

from fastapi.testclient import TestClient

from chattl.app.main import create_app
from chattl.app.realtime.manager import RealtimeEventManager
from chattl.app.settings import Settings


class RealtimeDeliveryTest(unittest.TestCase):
    def test_websocket_receives_translations_and_notices(self) -> None:
        os.environ["TRANSLATION_MODE"] = "mock"
        os.environ["OPENROUTER_API_KEY"] = "test-key"
        os.environ["OPENROUTER_MODEL"] = "test/model"
        os.environ["ENABLED_LANGUAGES"] = "English"
        os.environ["ENABLE_TRANSLATION"] = "true"

        app = create_app()
        required_events = {"translation.result", "notification"}

        with TestClient(app) as client:
            with client.websocket_connect("/ws/events") as socket:
                client.post(
                    "/chat/events",
                    json={"channel_type": "ls1", "sender": "Aki", "text": "おつかれさまでした"},
                )
                client.post("/chat/commands/kr", json={"args": ""})

                received_events: set[str] = set()
                for _ in range(20):
                    message = socket.receive_json()
                    self.assertIn("event", message)
                    self.assertIn("timestamp", message)
                    self.assertIn("payload", message)

                    event_type = message["event"]
                    received_events.add(event_type)

                    if event_type == "translation.result":
                        payload = message["payload"]
                        self.assertEqual(payload["prefix_label"], "[ChatTL][EN][Aki]: ")
                        self.assertEqual(payload["color_key"], "lang.en")
                        self.assertEqual(payload["channel"], "ls1")
                        self.assertTrue(payload["display_text"])

                    if event_type == "notification":
                        self.assertEqual(message["payload"]["level"], "error")
                        self.assertIn("/kr", message["payload"]["message"])

                    if required_events.issubset(received_events):
                        break

            status_payload = client.get("/realtime/status").json()
            self.assertGreaterEqual(status_payload["events_emitted"], 2)
            self.assertEqual(status_payload["total_clients_seen"], 1)

        self.assertTrue(
            required_events.issubset(received_events),
            msg=f"missing events: {sorted(required_events - received_events)}",
        )


    def test_host_can_push_frames_over_websocket(self) -> None:
        os.environ["TRANSLATION_MODE"] = "mock"
        os.environ["OPENROUTER_API_KEY"] = "test-key"
        os.environ["OPENROUTER_MODEL"] = "test/model"
        os.environ["ENABLED_LANGUAGES"] = "English"
        os.environ["ENABLE_TRANSLATION"] = "true"

        app = create_app()
        with TestClient(app) as client:
            with client.websocket_connect("/ws/events") as socket:
                socket.send_text("not json")
                error = socket.receive_json()
                self.assertEqual(error["event"], "host.error")

                socket.send_json({"type": "chat_event", "channel_type": "say", "sender": "Aki", "text": "hello"})
                ack = socket.receive_json()
                self.assertEqual(ack["event"], "host.ack")
                self.assertEqual(ack["payload"], {"type": "chat_event", "outcome": "no_jobs"})

                socket.send_json({"type": "chat_event", "sender": "Aki", "text": "missing channel"})
                self.assertEqual(socket.receive_json()["event"], "host.error")

                socket.send_json({"type": "command", "language": "jp", "args": "see you"})
                seen: dict[str, dict] = {}
                for _ in range(10):
                    message = socket.receive_json()
                    seen.setdefault(message["event"], message)
                    if {"host.ack", "translation.result"}.issubset(seen):
                        break

                self.assertEqual(seen["host.ack"]["payload"]["outcome"], "dispatched")
                self.assertEqual(seen["translation.result"]["payload"]["prefix_label"], "[ChatTL][JP] ➤ ")

            recent = client.get("/realtime/recent?event=host.ack").json()
            self.assertEqual(recent["count"], 0)


class RealtimeManagerTest(unittest.TestCase):
    def test_recent_events_are_bounded_and_filterable(self) -> None:
        settings = Settings(
            service_name="chattl",
            service_version="test",
            environment="test",
            log_level="INFO",
            openrouter_api_key=None,
            openrouter_model="",
            realtime_recent_events_limit=3,
        )
        manager = RealtimeEventManager(settings, logging.getLogger("chattl.tests.realtime"))

        manager.present("[ChatTL][EN][Aki]: ", "chat.say", "Hello", "konnichiwa", "say")
        for index in range(3):
            manager.notify(f"notice {index}", "info", "progress")

        recent = manager.recent_events(limit=10)
        self.assertEqual(len(recent), 3)
        self.assertEqual(recent[0]["payload"]["message"], "notice 2")
        self.assertEqual(manager.recent_events(event_type="translation.result"), [])
        self.assertEqual(manager.snapshot()["by_type"], {"translation.result": 1, "notification": 3})


if __name__ == "__main__":
    unittest.main()
