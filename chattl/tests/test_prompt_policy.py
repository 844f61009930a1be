from __future__ import annotations

import unittest

from chattl.app.translation.languages import AUTO_DETECT, LANGUAGE_CATALOG
from chattl.app.translation.memory import CONTEXT_HEADER
from chattl.app.translation.prompts import AUX_SEPARATOR, build_prompt, parse_completion


class PromptPolicyTest(unittest.TestCase):
    def test_build_prompt_is_pure(self) -> None:
        sources = (AUTO_DETECT, *(target.code for target in LANGUAGE_CATALOG))
        for source in sources:
            for target in LANGUAGE_CATALOG:
                for formal in (True, False):
                    with self.subTest(source=source, target=target.code, formal=formal):
                        first = build_prompt(source, target.code, formal, "ctx")
                        second = build_prompt(source, target.code, formal, "ctx")
                        self.assertEqual(first, second)

    def test_japanese_to_english_expects_romaji(self) -> None:
        plan = build_prompt("Japanese", "English", False)
        self.assertEqual(plan.rule, "japanese_to_english")
        self.assertTrue(plan.expects_aux_field)
        self.assertIn("romaji", plan.system_prompt)
        self.assertIn(AUX_SEPARATOR.strip(), plan.system_prompt)

    def test_english_to_japanese_uses_register(self) -> None:
        casual = build_prompt("English", "Japanese", False)
        formal = build_prompt("English", "Japanese", True)
        self.assertEqual(casual.rule, "english_to_japanese")
        self.assertIn("casual", casual.system_prompt)
        self.assertIn("formal", formal.system_prompt)
        self.assertNotEqual(casual.system_prompt, formal.system_prompt)

    def test_auto_to_script_target(self) -> None:
        plan = build_prompt("auto", "Korean", False)
        self.assertEqual(plan.rule, "auto_to_script")
        self.assertTrue(plan.expects_aux_field)
        self.assertIn("romanization", plan.system_prompt)

    def test_auto_to_english(self) -> None:
        plan = build_prompt("AUTO", "en", True)
        self.assertEqual(plan.rule, "auto_to_english")
        self.assertTrue(plan.expects_aux_field)
        self.assertNotIn("formal", plan.system_prompt)

    def test_known_source_to_script_target(self) -> None:
        plan = build_prompt("Japanese", "Chinese (Simplified)", False)
        self.assertEqual(plan.rule, "to_script")
        self.assertIn("pinyin", plan.system_prompt)

    def test_plain_target_has_no_aux(self) -> None:
        plan = build_prompt("Japanese", "Spanish", True)
        self.assertEqual(plan.rule, "to_plain")
        self.assertFalse(plan.expects_aux_field)
        self.assertIn("formal", plan.system_prompt)

    def test_unknown_pair_falls_back(self) -> None:
        with self.assertLogs("chattl.app.translation.prompts", level="WARNING"):
            plan = build_prompt("Japanese", "Klingon", False)
        self.assertEqual(plan.rule, "fallback")
        self.assertFalse(plan.expects_aux_field)
        self.assertIn("Klingon", plan.system_prompt)

    def test_context_only_travels_with_user_content(self) -> None:
        context = f"{CONTEXT_HEADER}\nAki: ready?"
        plan = build_prompt("Japanese", "English", False, context)
        self.assertNotIn("Aki: ready?", plan.system_prompt)

        rendered = plan.render_user_content("いくよ")
        self.assertTrue(rendered.startswith(CONTEXT_HEADER))
        self.assertIn("Translate only the following message:", rendered)
        self.assertTrue(rendered.endswith("いくよ"))

        self.assertEqual(build_prompt("Japanese", "English", False).render_user_content("いくよ"), "いくよ")


class ParseCompletionTest(unittest.TestCase):
    def test_paired_reply_is_split(self) -> None:
        self.assertEqual(
            parse_completion("  Thank you || arigatou  ", True),
            ("Thank you", "arigatou"),
        )

    def test_reply_without_separator_is_whole_text(self) -> None:
        self.assertEqual(parse_completion("Thank you", True), ("Thank you", None))

    def test_separator_ignored_when_not_expected(self) -> None:
        self.assertEqual(parse_completion("a || b", False), ("a || b", None))

    def test_more_than_one_separator_is_whole_text(self) -> None:
        self.assertEqual(parse_completion("a || b || c", True), ("a || b || c", None))

    def test_empty_display_part_is_whole_text(self) -> None:
        self.assertEqual(parse_completion(" || romaji", True), ("|| romaji", None))


if __name__ == "__main__":
    unittest.main()
