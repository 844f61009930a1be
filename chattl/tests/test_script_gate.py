from __future__ import annotations

import unittest

from chattl.app.translation.gate import ScriptGate


class ScriptGateTest(unittest.TestCase):
    def setUp(self) -> None:
        self.gate = ScriptGate()

    def test_blank_text_never_matches(self) -> None:
        for text in ("", "   ", "\n\t"):
            self.assertFalse(self.gate.contains_target_script(text))
        self.assertIsNone(self.gate.detect_script_language(""))

    def test_latin_text_does_not_match(self) -> None:
        self.assertFalse(self.gate.contains_target_script("hello there, ready for the raid?"))
        self.assertIsNone(self.gate.detect_script_language("gg wp"))

    def test_two_script_characters_match(self) -> None:
        self.assertTrue(self.gate.contains_target_script("よろしくお願いします"))
        self.assertTrue(self.gate.contains_target_script("ok ありがとう see you"))
        self.assertEqual(self.gate.detect_script_language("こんにちは"), "Japanese")

    def test_katakana_and_ideographs_match(self) -> None:
        self.assertTrue(self.gate.contains_target_script("タンク"))
        self.assertTrue(self.gate.contains_target_script("攻略"))

    def test_single_character_needs_high_ratio(self) -> None:
        self.assertTrue(self.gate.contains_target_script("草"))
        self.assertTrue(self.gate.contains_target_script("w草"))
        self.assertFalse(self.gate.contains_target_script("that was funny 草"))

    def test_fullwidth_punctuation_counts(self) -> None:
        self.assertEqual(self.gate.count_matches("！？"), 2)
        self.assertEqual(self.gate.count_matches("abc"), 0)

    def test_configured_language_is_reported(self) -> None:
        gate = ScriptGate(language="Chinese (Simplified)")
        self.assertEqual(gate.detect_script_language("你好朋友"), "Chinese (Simplified)")


if __name__ == "__main__":
    unittest.main()
