from __future__ import annotations

import logging
import os
import time
import unittest

from fastapi.testclient import TestClient

from chattl.app.main import create_app


class _CaptureHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


class ServiceBootTest(unittest.TestCase):
    def _health_loop(self, client: TestClient, duration_seconds: float, interval_seconds: float) -> dict:
        end_time = time.monotonic() + duration_seconds
        samples = 0
        latest_payload: dict | None = None

        while time.monotonic() < end_time:
            response = client.get("/health")
            self.assertEqual(response.status_code, 200)

            payload = response.json()
            self.assertEqual(payload["status"], "ok")
            self.assertIn("version", payload)
            self.assertIn("started_at", payload)
            self.assertIn("uptime_seconds", payload)
            self.assertTrue(payload["checks"]["dispatch_running"])
            self.assertTrue(payload["checks"]["realtime_running"])

            latest_payload = payload
            samples += 1
            time.sleep(interval_seconds)

        self.assertGreater(samples, 0)
        assert latest_payload is not None
        return latest_payload

    def _run_boot_cycle(self, duration_seconds: float, capture_handler: _CaptureHandler) -> dict:
        root_logger = logging.getLogger()
        app = create_app()
        root_logger.addHandler(capture_handler)

        try:
            with TestClient(app) as client:
                payload = self._health_loop(client, duration_seconds, 0.1)
        finally:
            root_logger.removeHandler(capture_handler)

        return payload

    def test_boot_health_and_restart(self) -> None:
        os.environ["TRANSLATION_MODE"] = "mock"
        os.environ["OPENROUTER_API_KEY"] = "test-key"
        os.environ["OPENROUTER_MODEL"] = "test/model"
        duration_seconds = float(os.getenv("BOOT_HEALTH_DURATION_SECONDS", "0.5"))

        capture_handler = _CaptureHandler()
        first_payload = self._run_boot_cycle(duration_seconds, capture_handler)
        second_payload = self._run_boot_cycle(duration_seconds, capture_handler)

        self.assertNotEqual(first_payload["started_at"], second_payload["started_at"])
        self.assertTrue(first_payload["checks"]["api_key_configured"])
        self.assertTrue(first_payload["checks"]["model_configured"])

        messages = [record.getMessage() for record in capture_handler.records]
        self.assertEqual(messages.count("service_startup"), 2)
        self.assertEqual(messages.count("service_shutdown"), 2)
        self.assertIn("dispatch_engine_started", messages)

        startup = next(r for r in capture_handler.records if r.getMessage() == "service_startup")
        self.assertEqual(getattr(startup, "event", None), "startup")
        self.assertEqual(getattr(startup, "service_version", None), first_payload["version"])

    def test_config_log_never_contains_api_key(self) -> None:
        os.environ["TRANSLATION_MODE"] = "mock"
        os.environ["OPENROUTER_API_KEY"] = "sk-or-secret-value"
        os.environ["OPENROUTER_MODEL"] = "test/model"

        capture_handler = _CaptureHandler()
        root_logger = logging.getLogger()
        app = create_app()
        root_logger.addHandler(capture_handler)
        try:
            with TestClient(app) as client:
                settings_payload = client.get("/settings").json()
        finally:
            root_logger.removeHandler(capture_handler)
            os.environ["OPENROUTER_API_KEY"] = "test-key"

        self.assertTrue(settings_payload["api_key_configured"])
        self.assertNotIn("sk-or-secret-value", str(settings_payload))
        config_record = next(
            r for r in capture_handler.records if r.getMessage() == "service_config_loaded"
        )
        self.assertNotIn("sk-or-secret-value", str(getattr(config_record, "config")))


if __name__ == "__main__":
    unittest.main()
