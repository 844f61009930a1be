from __future__ import annotations

import logging
import threading
from time import monotonic
from typing import Callable, Protocol

from chattl.app.translation.types import FailureKind, TranslationFailure

SETTINGS_HINT = "check your settings"


class NotificationSurface(Protocol):
    def notify(self, message: str, level: str, category: str) -> None: ...


class ErrorNotifier:
    """Turns translation failures into user-facing notices.

    Configuration failures share a cool-down per scope so a burst of chat
    does not repeat the same warning. Every other failure is shown each time.
    """

    def __init__(
        self,
        surface: NotificationSurface,
        logger: logging.Logger,
        cooldown_seconds: float = 300.0,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        self._surface = surface
        self._logger = logger
        self._cooldown_seconds = max(0.0, cooldown_seconds)
        self._clock = clock
        self._last_shown_at: dict[tuple[str, str], float] = {}
        self._lock = threading.Lock()
        self.suppressed_count = 0

    def set_cooldown(self, cooldown_seconds: float) -> None:
        self._cooldown_seconds = max(0.0, cooldown_seconds)

    def report(self, failure: TranslationFailure, scope: str) -> bool:
        try:
            if failure.kind.is_configuration:
                return self._report_configuration(failure, scope)
            message = self._message_for(failure)
            self._logger.warning(
                "translation_failure_reported",
                extra={
                    "event": "translation_failure",
                    "failure_kind": failure.kind.value,
                    "status_code": failure.status_code,
                    "scope": scope,
                    "reason": failure.detail,
                },
            )
            self._surface.notify(message, "error", failure.kind.value)
            return True
        except Exception as exc:
            self._logger.error(
                "error_notifier_failed",
                extra={"event": "error_notifier_failed", "reason": repr(exc)},
            )
            return False

    def warn_not_configured(
        self,
        scope: str,
        kind: FailureKind = FailureKind.MISSING_CREDENTIALS,
    ) -> bool:
        failure = TranslationFailure(kind, "script text detected while unconfigured")
        return self.report(failure, scope)

    def info(self, message: str, category: str = "info") -> None:
        try:
            self._surface.notify(message, "info", category)
        except Exception as exc:
            self._logger.error(
                "error_notifier_failed",
                extra={"event": "error_notifier_failed", "reason": repr(exc)},
            )

    def usage(self, message: str) -> None:
        try:
            self._surface.notify(message, "error", "usage")
        except Exception as exc:
            self._logger.error(
                "error_notifier_failed",
                extra={"event": "error_notifier_failed", "reason": repr(exc)},
            )

    def _report_configuration(self, failure: TranslationFailure, scope: str) -> bool:
        key = ("configuration", scope)
        now = self._clock()
        with self._lock:
            last = self._last_shown_at.get(key)
            if last is not None and now - last < self._cooldown_seconds:
                self.suppressed_count += 1
                return False
            self._last_shown_at[key] = now

        self._logger.warning(
            "translation_not_configured",
            extra={
                "event": "translation_not_configured",
                "failure_kind": failure.kind.value,
                "scope": scope,
            },
        )
        self._surface.notify(self._message_for(failure), "error", "configuration")
        return True

    def _message_for(self, failure: TranslationFailure) -> str:
        if failure.kind.is_configuration:
            missing = "API key" if failure.kind is FailureKind.MISSING_CREDENTIALS else "model"
            return (
                "Chat translation is not configured: the OpenRouter "
                f"{missing} is missing. Please {SETTINGS_HINT}."
            )
        if failure.kind is FailureKind.NETWORK_ERROR:
            return "Network error during translation. Please try again shortly."
        if failure.kind is FailureKind.PROVIDER_ERROR:
            return (
                f"Translation failed: the provider returned status {failure.status_code}. "
                f"Please {SETTINGS_HINT} or see the log for details."
            )
        return f"Translation failed. Please try again later or {SETTINGS_HINT}."
