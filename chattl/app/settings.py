from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from chattl.app.translation.languages import resolve_language

MAX_ENABLED_LANGUAGES = 2

DEFAULT_ENABLED_CHAT_TYPES: tuple[str, ...] = (
    "say",
    "yell",
    "shout",
    "tell_incoming",
    "party",
    "alliance",
    "free_company",
    "novice_network",
    "ls1",
    "ls2",
    "ls3",
    "ls4",
    "ls5",
    "ls6",
    "ls7",
    "ls8",
    "cwls1",
    "cwls2",
    "cwls3",
    "cwls4",
    "cwls5",
    "cwls6",
    "cwls7",
    "cwls8",
)


def _strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    return value


def load_env_file(env_path: Path) -> None:
    if not env_path.exists():
        return

    for raw_line in env_path.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue

        if line.startswith("export "):
            line = line[len("export ") :]

        key, separator, value = line.partition("=")
        if not separator:
            continue

        env_key = key.strip()
        if not env_key:
            continue

        os.environ.setdefault(env_key, _strip_quotes(value.strip()))


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_csv(key: str, default: tuple[str, ...]) -> tuple[str, ...]:
    value = os.getenv(key)
    if value is None:
        return default
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _env_mode(
    key: str,
    default: str,
    allowed: tuple[str, ...],
) -> str:
    value = os.getenv(key, default).strip().lower()
    if value not in allowed:
        allowed_csv = ", ".join(allowed)
        raise ValueError(f"{key} must be one of: {allowed_csv}")
    return value


def validate_enabled_languages(languages: tuple[str, ...]) -> tuple[str, ...]:
    resolved: list[str] = []
    for raw in languages:
        target = resolve_language(raw)
        if target is None:
            raise ValueError(f"ENABLED_LANGUAGES contains unknown language: {raw}")
        if target.code not in resolved:
            resolved.append(target.code)

    if len(resolved) > MAX_ENABLED_LANGUAGES:
        raise ValueError(
            f"ENABLED_LANGUAGES allows at most {MAX_ENABLED_LANGUAGES} languages"
        )
    return tuple(resolved)


def _resolve_language_codes(languages: tuple[str, ...]) -> tuple[str, ...]:
    codes: list[str] = []
    for raw in languages:
        target = resolve_language(raw)
        if target is None:
            raise ValueError(f"unknown language: {raw}")
        codes.append(target.code)
    return tuple(codes)


@dataclass(frozen=True)
class Settings:
    service_name: str
    service_version: str
    environment: str
    log_level: str
    openrouter_api_key: str | None
    openrouter_model: str
    translation_mode: str = "openrouter"
    openrouter_api_base_url: str = "https://openrouter.ai/api/v1"
    enable_translation: bool = True
    translate_own_messages: bool = False
    use_formal_language: bool = False
    enabled_chat_types: tuple[str, ...] = DEFAULT_ENABLED_CHAT_TYPES
    enabled_languages: tuple[str, ...] = ("English",)
    enable_context_memory: bool = True
    max_context_messages: int = 3
    local_player_name: str | None = None
    script_source_language: str = "Japanese"
    classifier_target_languages: tuple[str, ...] = ()
    translation_timeout_seconds: float = 15.0
    translation_max_concurrency: int = 0
    mock_translation_delay_seconds: float = 0.0
    translation_recent_results_limit: int = 80
    error_notification_cooldown_seconds: float = 300.0
    realtime_client_queue_maxsize: int = 128
    realtime_recent_events_limit: int = 200
    channel_colors: dict[str, str] = field(default_factory=dict)

    @property
    def api_key_configured(self) -> bool:
        return bool((self.openrouter_api_key or "").strip())

    @property
    def model_configured(self) -> bool:
        return bool(self.openrouter_model.strip())

    @property
    def provider_configured(self) -> bool:
        return self.api_key_configured and self.model_configured

    def redacted(self) -> dict[str, object]:
        return {
            "service_name": self.service_name,
            "service_version": self.service_version,
            "environment": self.environment,
            "log_level": self.log_level,
            "api_key_configured": self.api_key_configured,
            "openrouter_model": self.openrouter_model,
            "translation_mode": self.translation_mode,
            "openrouter_api_base_url": self.openrouter_api_base_url,
            "enable_translation": self.enable_translation,
            "translate_own_messages": self.translate_own_messages,
            "use_formal_language": self.use_formal_language,
            "enabled_chat_types": list(self.enabled_chat_types),
            "enabled_languages": list(self.enabled_languages),
            "enable_context_memory": self.enable_context_memory,
            "max_context_messages": self.max_context_messages,
            "local_player_name_configured": bool(self.local_player_name),
            "script_source_language": self.script_source_language,
            "classifier_target_languages": list(self.classifier_target_languages),
            "translation_timeout_seconds": self.translation_timeout_seconds,
            "translation_max_concurrency": self.translation_max_concurrency,
            "translation_recent_results_limit": self.translation_recent_results_limit,
            "error_notification_cooldown_seconds": self.error_notification_cooldown_seconds,
            "realtime_client_queue_maxsize": self.realtime_client_queue_maxsize,
            "realtime_recent_events_limit": self.realtime_recent_events_limit,
        }


def _parse_channel_colors(raw: str | None) -> dict[str, str]:
    # CHANNEL_COLORS=party:party_blue,ls1:green
    if not raw:
        return {}
    colors: dict[str, str] = {}
    for item in raw.split(","):
        channel, separator, color_key = item.partition(":")
        if separator and channel.strip() and color_key.strip():
            colors[channel.strip().lower()] = color_key.strip()
    return colors


def build_settings(project_root: Path) -> Settings:
    load_env_file(project_root / ".env")

    max_context_messages = int(os.getenv("MAX_CONTEXT_MESSAGES", "3"))
    if max_context_messages < 1:
        raise ValueError("MAX_CONTEXT_MESSAGES must be at least 1")

    return Settings(
        service_name=os.getenv("CHATTL_SERVICE_NAME", "chattl"),
        service_version=os.getenv("CHATTL_SERVICE_VERSION", "1.0.0"),
        environment=os.getenv("CHATTL_ENV", "development"),
        log_level=os.getenv("CHATTL_LOG_LEVEL", "INFO").upper(),
        openrouter_api_key=os.getenv("OPENROUTER_API_KEY"),
        openrouter_model=os.getenv("OPENROUTER_MODEL", "openai/gpt-3.5-turbo").strip(),
        translation_mode=_env_mode(
            "TRANSLATION_MODE",
            "openrouter",
            ("openrouter", "mock"),
        ),
        openrouter_api_base_url=os.getenv(
            "OPENROUTER_API_BASE_URL",
            "https://openrouter.ai/api/v1",
        ).rstrip("/"),
        enable_translation=_env_bool("ENABLE_TRANSLATION", True),
        translate_own_messages=_env_bool("TRANSLATE_OWN_MESSAGES", False),
        use_formal_language=_env_bool("USE_FORMAL_LANGUAGE", False),
        enabled_chat_types=tuple(
            item.lower()
            for item in _env_csv("ENABLED_CHAT_TYPES", DEFAULT_ENABLED_CHAT_TYPES)
        ),
        enabled_languages=validate_enabled_languages(
            _env_csv("ENABLED_LANGUAGES", ("English",))
        ),
        enable_context_memory=_env_bool("ENABLE_CONTEXT_MEMORY", True),
        max_context_messages=max_context_messages,
        local_player_name=(os.getenv("LOCAL_PLAYER_NAME") or "").strip() or None,
        script_source_language=os.getenv("SCRIPT_SOURCE_LANGUAGE", "Japanese").strip(),
        classifier_target_languages=_resolve_language_codes(
            _env_csv("CLASSIFIER_TARGET_LANGUAGES", ())
        ),
        translation_timeout_seconds=float(
            os.getenv("TRANSLATION_TIMEOUT_SECONDS", "15.0")
        ),
        translation_max_concurrency=int(os.getenv("TRANSLATION_MAX_CONCURRENCY", "0")),
        mock_translation_delay_seconds=float(
            os.getenv("MOCK_TRANSLATION_DELAY_SECONDS", "0.0")
        ),
        translation_recent_results_limit=int(
            os.getenv("TRANSLATION_RECENT_RESULTS_LIMIT", "80")
        ),
        error_notification_cooldown_seconds=float(
            os.getenv("ERROR_NOTIFICATION_COOLDOWN_SECONDS", "300")
        ),
        realtime_client_queue_maxsize=int(
            os.getenv("REALTIME_CLIENT_QUEUE_MAXSIZE", "128")
        ),
        realtime_recent_events_limit=int(os.getenv("REALTIME_RECENT_EVENTS_LIMIT", "200")),
        channel_colors=_parse_channel_colors(os.getenv("CHANNEL_COLORS")),
    )
