from __future__ import annotations

from dataclasses import dataclass, replace

AUTO_DETECT = "auto"


@dataclass(frozen=True)
class LanguageTarget:
    code: str
    display_label: str
    color_key: str
    enabled: bool = False
    formality_capable: bool = True
    aux_label: str | None = None

    @property
    def script_bearing(self) -> bool:
        return self.aux_label is not None


LANGUAGE_CATALOG: tuple[LanguageTarget, ...] = (
    LanguageTarget(
        code="English",
        display_label="EN",
        color_key="lang.en",
        formality_capable=False,
    ),
    LanguageTarget(
        code="Japanese",
        display_label="JP",
        color_key="lang.jp",
        aux_label="romaji",
    ),
    LanguageTarget(
        code="Chinese (Simplified)",
        display_label="CN",
        color_key="lang.cn",
        aux_label="pinyin",
    ),
    LanguageTarget(
        code="Chinese (Traditional)",
        display_label="CNT",
        color_key="lang.cnt",
        aux_label="pinyin",
    ),
    LanguageTarget(
        code="Korean",
        display_label="KR",
        color_key="lang.kr",
        aux_label="romanization",
    ),
    LanguageTarget(code="Indonesian", display_label="ID", color_key="lang.id"),
    LanguageTarget(code="Spanish", display_label="ES", color_key="lang.es"),
    LanguageTarget(code="French", display_label="FR", color_key="lang.fr"),
    LanguageTarget(code="German", display_label="DE", color_key="lang.de"),
)

# Slash-command names and common spellings accepted for each language.
_ALIASES: dict[str, str] = {
    "en": "English",
    "eng": "English",
    "jp": "Japanese",
    "ja": "Japanese",
    "cn": "Chinese (Simplified)",
    "zh": "Chinese (Simplified)",
    "chinese": "Chinese (Simplified)",
    "cnt": "Chinese (Traditional)",
    "zh-tw": "Chinese (Traditional)",
    "kr": "Korean",
    "ko": "Korean",
    "id": "Indonesian",
    "es": "Spanish",
    "fr": "French",
    "de": "German",
}

_BY_CODE = {target.code.lower(): target for target in LANGUAGE_CATALOG}


def resolve_language(name: str) -> LanguageTarget | None:
    key = name.strip().lower()
    if not key:
        return None
    if key in _BY_CODE:
        return _BY_CODE[key]
    code = _ALIASES.get(key)
    if code is None:
        return None
    return _BY_CODE[code.lower()]


def is_script_bearing(name: str) -> bool:
    target = resolve_language(name)
    return target is not None and target.script_bearing


def enabled_targets(codes: tuple[str, ...]) -> list[LanguageTarget]:
    targets: list[LanguageTarget] = []
    for code in codes:
        target = resolve_language(code)
        if target is None or any(item.code == target.code for item in targets):
            continue
        targets.append(replace(target, enabled=True))
    return targets
