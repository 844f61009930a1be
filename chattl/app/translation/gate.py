from __future__ import annotations

from dataclasses import dataclass

# Hiragana, Katakana, CJK symbols/punctuation, fullwidth forms, CJK ideographs.
DEFAULT_SCRIPT_RANGES: tuple[tuple[int, int], ...] = (
    (0x3040, 0x309F),
    (0x30A0, 0x30FF),
    (0x3000, 0x303F),
    (0xFF00, 0xFFEF),
    (0x4E00, 0x9FAF),
)

MIN_MATCHED_CHARACTERS = 2
MIN_MATCHED_RATIO = 0.3


@dataclass(frozen=True)
class ScriptGate:
    """Cheap local check for whether text is worth sending to the provider.

    A single matched character is treated as noise (stray punctuation or an
    emoticon) unless it makes up a large share of a short message.
    """

    language: str = "Japanese"
    ranges: tuple[tuple[int, int], ...] = DEFAULT_SCRIPT_RANGES

    def count_matches(self, text: str) -> int:
        matched = 0
        for char in text:
            point = ord(char)
            for low, high in self.ranges:
                if low <= point <= high:
                    matched += 1
                    break
        return matched

    def contains_target_script(self, text: str) -> bool:
        if not text or not text.strip():
            return False

        matched = self.count_matches(text)
        if matched >= MIN_MATCHED_CHARACTERS:
            return True
        return matched > 0 and (matched / len(text)) >= MIN_MATCHED_RATIO

    def detect_script_language(self, text: str) -> str | None:
        if self.contains_target_script(text):
            return self.language
        return None
