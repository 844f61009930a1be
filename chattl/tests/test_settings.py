from __future__ import annotations

import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from chattl.app.settings import build_settings, validate_enabled_languages


class SettingsTest(unittest.TestCase):
    def setUp(self) -> None:
        self._tempdir = tempfile.TemporaryDirectory()
        self.addCleanup(self._tempdir.cleanup)
        self.root = Path(self._tempdir.name)

        patcher = mock.patch.dict(os.environ, {}, clear=True)
        patcher.start()
        self.addCleanup(patcher.stop)

    def test_defaults(self) -> None:
        settings = build_settings(self.root)

        self.assertEqual(settings.translation_mode, "openrouter")
        self.assertEqual(settings.enabled_languages, ("English",))
        self.assertEqual(settings.max_context_messages, 3)
        self.assertNotIn("echo", settings.enabled_chat_types)
        self.assertIn("party", settings.enabled_chat_types)
        self.assertFalse(settings.api_key_configured)
        self.assertTrue(settings.model_configured)
        self.assertFalse(settings.provider_configured)

    def test_env_file_does_not_override_process_env(self) -> None:
        (self.root / ".env").write_text(
            "\n".join(
                [
                    "# local overrides",
                    "export OPENROUTER_API_KEY='from-file'",
                    'OPENROUTER_MODEL="file/model"',
                    "ENABLED_LANGUAGES=en, jp",
                    "CHANNEL_COLORS=party:party_blue,ls1:green",
                ]
            ),
            encoding="utf-8",
        )
        os.environ["OPENROUTER_MODEL"] = "env/model"

        settings = build_settings(self.root)

        self.assertEqual(settings.openrouter_api_key, "from-file")
        self.assertEqual(settings.openrouter_model, "env/model")
        self.assertEqual(settings.enabled_languages, ("English", "Japanese"))
        self.assertEqual(settings.channel_colors, {"party": "party_blue", "ls1": "green"})

    def test_invalid_values_are_rejected(self) -> None:
        os.environ["ENABLED_LANGUAGES"] = "English,Japanese,Korean"
        with self.assertRaises(ValueError):
            build_settings(self.root)

        os.environ["ENABLED_LANGUAGES"] = "English"
        os.environ["MAX_CONTEXT_MESSAGES"] = "0"
        with self.assertRaises(ValueError):
            build_settings(self.root)

        os.environ["MAX_CONTEXT_MESSAGES"] = "3"
        os.environ["TRANSLATION_MODE"] = "offline"
        with self.assertRaises(ValueError):
            build_settings(self.root)

    def test_redacted_hides_secrets(self) -> None:
        os.environ["OPENROUTER_API_KEY"] = "sk-or-secret"
        os.environ["LOCAL_PLAYER_NAME"] = "Local Player"

        redacted = build_settings(self.root).redacted()

        self.assertTrue(redacted["api_key_configured"])
        self.assertNotIn("sk-or-secret", str(redacted))
        self.assertNotIn("Local Player", str(redacted))

    def test_validate_enabled_languages_deduplicates(self) -> None:
        self.assertEqual(
            validate_enabled_languages(("en", "English", "kr")),
            ("English", "Korean"),
        )


if __name__ == "__main__":
    unittest.main()
