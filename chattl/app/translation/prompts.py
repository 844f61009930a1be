from __future__ import annotations

import logging
from dataclasses import dataclass

from chattl.app.translation.languages import AUTO_DETECT, LanguageTarget, resolve_language

AUX_SEPARATOR = " || "

_logger = logging.getLogger(__name__)

_NO_EXTRAS = "Provide no explanations, notes or additional text."


@dataclass(frozen=True)
class PromptPlan:
    system_prompt: str
    expects_aux_field: bool
    context_prefix: str = ""
    rule: str = ""

    def render_user_content(self, text: str) -> str:
        if not self.context_prefix:
            return text
        return (
            f"{self.context_prefix}\n\n"
            "Translate only the following message:\n"
            f"{text}"
        )


def _paired_format(primary: str, aux_label: str, aux_of: str) -> str:
    return (
        f"Follow this format exactly: '{primary} || {aux_label}'. "
        f"The {primary} comes first, followed by the ' || ' separator, then the "
        f"{aux_label} (transliteration of the {aux_of} into the Latin alphabet)."
    )


def _formality_clause(target: LanguageTarget | None, formal: bool) -> str:
    if target is None or not target.formality_capable:
        return ""
    if formal:
        return (
            " Use a formal, polite register"
            f" appropriate for addressing strangers in {target.code}."
        )
    return f" Use a casual, informal register as used between friends in {target.code}."


def _language_name(raw: str) -> str:
    target = resolve_language(raw)
    return target.code if target is not None else raw.strip()


def build_prompt(
    source_language: str,
    target_language: str,
    formal: bool,
    context_prefix: str = "",
) -> PromptPlan:
    """Pick the system instruction and response format for one job.

    Rules are checked in order and the first match wins. The context prefix
    only ever travels with the user content.
    """
    source_auto = source_language.strip().lower() == AUTO_DETECT
    source_name = AUTO_DETECT if source_auto else _language_name(source_language)
    target = resolve_language(target_language)
    target_name = target.code if target is not None else target_language.strip()
    register = _formality_clause(target, formal)

    if source_auto and target is not None and target.script_bearing:
        system_prompt = (
            f"You are a direct translator to {target_name}. Detect the language of the "
            f"input text and translate it to {target_name}. "
            + _paired_format(f"{target_name} text", target.aux_label or "", "translation")
            + register
            + f" {_NO_EXTRAS}"
        )
        return PromptPlan(system_prompt, True, context_prefix, "auto_to_script")

    if source_auto and target_name == "English":
        system_prompt = (
            "You are a direct translator to English. Detect the language of the input "
            "text and translate it into natural English. If the input is written in "
            "Japanese, Chinese or Korean, append ' || ' followed by the romaji, pinyin "
            "or romanization of the original text; otherwise output only the English "
            f"translation. {_NO_EXTRAS}"
        )
        return PromptPlan(system_prompt, True, context_prefix, "auto_to_english")

    if source_name == "Japanese" and target_name == "English":
        system_prompt = (
            "You are a direct translator from Japanese to English. "
            + _paired_format("English translation", "romaji", "original Japanese text")
            + f" {_NO_EXTRAS}"
        )
        return PromptPlan(system_prompt, True, context_prefix, "japanese_to_english")

    if source_name == "English" and target_name == "Japanese":
        system_prompt = (
            "You are a direct translator from English to Japanese. "
            + _paired_format("Japanese text", "romaji", "Japanese text")
            + register
            + f" {_NO_EXTRAS}"
        )
        return PromptPlan(system_prompt, True, context_prefix, "english_to_japanese")

    if target is not None and target.script_bearing:
        system_prompt = (
            f"You are a direct translator from {source_name} to {target_name}. "
            + _paired_format(f"{target_name} text", target.aux_label or "", "translation")
            + register
            + f" {_NO_EXTRAS}"
        )
        return PromptPlan(system_prompt, True, context_prefix, "to_script")

    if target is not None:
        source_phrase = (
            "Detect the language of the input text and translate it"
            if source_auto
            else f"Translate the input text from {source_name}"
        )
        system_prompt = (
            f"You are a direct translator to {target_name}. {source_phrase} to "
            f"{target_name}. Return only the translated text."
            + register
            + f" {_NO_EXTRAS}"
        )
        return PromptPlan(system_prompt, False, context_prefix, "to_plain")

    _logger.warning(
        "prompt_unsupported_language_pair",
        extra={
            "event": "prompt_unsupported_pair",
            "source_language": source_name,
            "target_language": target_name,
        },
    )
    system_prompt = (
        f"Translate the following text from {source_name} to {target_name}. "
        "Provide only the translated text."
    )
    return PromptPlan(system_prompt, False, context_prefix, "fallback")


def parse_completion(content: str, expects_aux_field: bool) -> tuple[str, str | None]:
    text = content.strip()
    if not expects_aux_field or AUX_SEPARATOR not in text:
        return text, None

    parts = text.split(AUX_SEPARATOR)
    if len(parts) != 2:
        return text, None

    display_text, aux_text = parts[0].strip(), parts[1].strip()
    if not display_text:
        return text, None
    return display_text, aux_text or None
