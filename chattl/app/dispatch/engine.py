from __future__ import annotations

import asyncio
import contextlib
import logging
from collections import defaultdict, deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from time import monotonic
from typing import Any, AsyncIterator, Callable, Coroutine, Protocol

from chattl.app.chat.types import ChatEvent, parse_command_args
from chattl.app.dispatch.notifier import ErrorNotifier, NotificationSurface
from chattl.app.settings import MAX_ENABLED_LANGUAGES, Settings
from chattl.app.translation.classifier import LanguageClassifier
from chattl.app.translation.client import TranslationClient
from chattl.app.translation.gate import ScriptGate
from chattl.app.translation.languages import (
    AUTO_DETECT,
    LanguageTarget,
    enabled_targets,
    resolve_language,
)
from chattl.app.translation.memory import ContextMemoryStore
from chattl.app.translation.providers.base import CompletionProvider
from chattl.app.translation.providers.mock import MockCompletionProvider
from chattl.app.translation.providers.openrouter import OpenRouterCompletionProvider
from chattl.app.translation.types import (
    DeliveredTranslation,
    FailureKind,
    TranslationFailure,
    TranslationJob,
    TranslationResult,
    TranslationSuccess,
)

OUTPUT_TAG = "[ChatTL]"
OUTPUT_MARKERS = (OUTPUT_TAG, "[TR]:")

COMMAND_USAGE = (
    "Usage: /{command} <message> or /{command} <channel> <message> "
    "(e.g. /{command} say Hello or /{command} party Hello)"
)


class PresentationSink(Protocol):
    def present(
        self,
        prefix_label: str,
        color_key: str,
        display_text: str,
        aux_text: str | None = None,
        channel: str | None = None,
    ) -> None: ...


class EventOutcome(str, Enum):
    DISABLED = "filtered_disabled"
    NOT_CONFIGURED = "filtered_not_configured"
    CHANNEL_DISABLED = "filtered_channel_disabled"
    FEEDBACK_LOOP = "filtered_feedback_loop"
    SELF_MESSAGE = "filtered_self_message"
    NO_JOBS = "no_jobs"
    INVALID_COMMAND = "invalid_command"
    DISPATCHED = "dispatched"
    ERROR = "error"


@dataclass(frozen=True)
class _Delivery:
    event_id: int
    channel: str
    sender: str
    prefix_label: str
    color_key: str
    scope: str
    origin: str


@dataclass
class DispatchMetrics:
    started_at: str | None = None
    running: bool = False
    healthy: bool = False
    events_received: int = 0
    events_dispatched: int = 0
    commands_received: int = 0
    jobs_dispatched: int = 0
    jobs_succeeded: int = 0
    jobs_failed: int = 0
    jobs_skipped: int = 0
    classifier_skips: int = 0
    average_latency_ms: float = 0.0
    last_result_at: str | None = None
    last_error: str | None = None
    filtered_by_reason: dict[str, int] = field(default_factory=dict)


class DispatchEngine:
    """Routes chat events to translation jobs and delivers the results.

    ``on_chat_event`` and ``on_direct_translate_command`` only do in-memory
    filtering and planning; every job then runs as its own task on the
    engine's event loop. A job's failure is reported through the notifier
    and never reaches sibling jobs or the caller. Results are presented in
    completion order, not submission order.
    """

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        sink: PresentationSink,
        surface: NotificationSurface,
        provider_override: CompletionProvider | None = None,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        self._settings = settings
        self._logger = logger
        self._sink = sink
        self._client = TranslationClient(
            provider_override or self._build_provider(settings),
            logger,
        )
        self._classifier = LanguageClassifier(self._client, logger)
        self._notifier = ErrorNotifier(
            surface,
            logger,
            cooldown_seconds=settings.error_notification_cooldown_seconds,
            clock=clock,
        )
        self._memory = ContextMemoryStore(
            max_messages=settings.max_context_messages,
            enabled=settings.enable_context_memory,
        )
        self._gate = ScriptGate(language=settings.script_source_language)
        self._semaphore = self._build_semaphore(settings)
        self._metrics = DispatchMetrics()
        self._filtered_counts: defaultdict[str, int] = defaultdict(int)
        self._recent_results: deque[DeliveredTranslation] = deque(
            maxlen=max(1, settings.translation_recent_results_limit)
        )
        self._tasks: set[asyncio.Task[None]] = set()
        self._loop: asyncio.AbstractEventLoop | None = None
        self._event_counter = 0

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def memory(self) -> ContextMemoryStore:
        return self._memory

    @property
    def notifier(self) -> ErrorNotifier:
        return self._notifier

    @property
    def client(self) -> TranslationClient:
        return self._client

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def start(self) -> None:
        self._loop = asyncio.get_running_loop()
        self._metrics.running = True
        self._metrics.healthy = True
        self._metrics.started_at = datetime.now(timezone.utc).isoformat()
        self._metrics.last_error = None
        self._logger.info(
            "dispatch_engine_started",
            extra={
                "event": "dispatch_started",
                "service_name": self._settings.service_name,
                "service_version": self._settings.service_version,
                "provider_name": self._client.provider_name,
                "enabled_languages": list(self._settings.enabled_languages),
            },
        )

    async def stop(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        await self._client.aclose()
        self._metrics.running = False
        self._metrics.healthy = False
        self._loop = None

    async def drain(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def apply_settings(self, settings: Settings) -> None:
        self._settings = settings
        self._memory.configure(settings.max_context_messages, settings.enable_context_memory)
        self._notifier.set_cooldown(settings.error_notification_cooldown_seconds)
        self._gate = ScriptGate(language=settings.script_source_language)
        self._semaphore = self._build_semaphore(settings)
        self._logger.info(
            "dispatch_settings_applied",
            extra={"event": "settings_applied", "config": settings.redacted()},
        )

    def clear_context(self, channel: str | None = None) -> int:
        if channel is None:
            return self._memory.clear_all()
        return 1 if self._memory.clear(channel.strip().lower()) else 0

    def submit_chat_event(self, event: ChatEvent) -> None:
        if self._loop is None:
            raise RuntimeError("dispatch engine is not started")
        self._loop.call_soon_threadsafe(self.on_chat_event, event)

    def on_chat_event(self, event: ChatEvent) -> EventOutcome:
        self._metrics.events_received += 1
        try:
            outcome, jobs = self._plan_event(event)
            if outcome is not EventOutcome.DISPATCHED:
                self._count_filtered(outcome)
                return outcome

            self._event_counter += 1
            event_id = self._event_counter
            channel = event.channel_type.strip().lower()
            channel_color = self._settings.channel_colors.get(channel)
            for job in jobs:
                target = resolve_language(job.target_language)
                label = target.display_label if target is not None else job.target_language
                color_key = channel_color or (
                    target.color_key if target is not None else f"chat.{channel}"
                )
                delivery = _Delivery(
                    event_id=event_id,
                    channel=channel,
                    sender=event.sender,
                    prefix_label=f"{OUTPUT_TAG}[{label}][{event.sender}]: ",
                    color_key=color_key,
                    scope="chat",
                    origin="chat",
                )
                self._spawn(self._run_job(job, delivery))

            self._metrics.events_dispatched += 1
            return outcome
        except Exception as exc:
            self._metrics.last_error = repr(exc)
            self._count_filtered(EventOutcome.ERROR)
            self._logger.exception(
                "dispatch_event_dropped",
                extra={
                    "event": "dispatch_event_dropped",
                    "channel_type": event.channel_type,
                    "reason": repr(exc),
                },
            )
            return EventOutcome.ERROR

    def on_direct_translate_command(self, target_language: str, raw_args: str) -> EventOutcome:
        self._metrics.commands_received += 1
        target = resolve_language(target_language)
        command_name = target_language.strip().lower() or "jp"
        if target is None:
            self._notifier.usage(f"Unknown translation language: {target_language}")
            return EventOutcome.INVALID_COMMAND

        command = parse_command_args(target.code, raw_args)
        if command is None:
            self._notifier.usage(COMMAND_USAGE.format(command=command_name))
            return EventOutcome.INVALID_COMMAND

        if not self._settings.provider_configured:
            self._notifier.report(self._configuration_failure(), "command")
            return EventOutcome.NOT_CONFIGURED

        self._notifier.info(f"Translating to {target.code}...", "progress")
        channel = command.channel.value
        job = TranslationJob(
            source_text=command.text,
            source_language_hint=AUTO_DETECT,
            target_language=target.code,
            formal=self._settings.use_formal_language,
            context_prefix=self._memory.snapshot(channel),
        )
        self._event_counter += 1
        delivery = _Delivery(
            event_id=self._event_counter,
            channel=channel,
            sender="",
            prefix_label=f"{OUTPUT_TAG}[{target.display_label}] ➤ ",
            color_key=target.color_key,
            scope="command",
            origin="command",
        )
        self._spawn(self._run_job(job, delivery))
        return EventOutcome.DISPATCHED

    def snapshot(self) -> dict[str, object]:
        payload = asdict(self._metrics)
        payload["translation_enabled"] = self._settings.enable_translation
        payload["provider_configured"] = self._settings.provider_configured
        payload["provider_name"] = self._client.provider_name
        payload["requests_sent"] = self._client.requests_sent
        payload["jobs_in_flight"] = len(self._tasks)
        payload["context_channels"] = self._memory.channel_keys()
        payload["notifications_suppressed"] = self._notifier.suppressed_count
        payload["recent_results_count"] = len(self._recent_results)
        return payload

    def recent_results(self, limit: int = 10) -> list[dict[str, object]]:
        bounded = max(1, min(limit, 100))
        return [item.to_dict() for item in list(self._recent_results)[-bounded:]][::-1]

    def _build_provider(self, settings: Settings) -> CompletionProvider:
        if settings.translation_mode == "mock":
            return MockCompletionProvider(delay_seconds=settings.mock_translation_delay_seconds)

        if settings.translation_mode == "openrouter":
            return OpenRouterCompletionProvider(settings=settings)

        raise ValueError("unsupported translation mode. Expected 'openrouter' or 'mock'.")

    def _build_semaphore(self, settings: Settings) -> asyncio.Semaphore | None:
        if settings.translation_max_concurrency <= 0:
            return None
        return asyncio.Semaphore(settings.translation_max_concurrency)

    def _plan_event(self, event: ChatEvent) -> tuple[EventOutcome, list[TranslationJob]]:
        settings = self._settings
        if not settings.enable_translation:
            return EventOutcome.DISABLED, []

        script_language = self._gate.detect_script_language(event.text)
        if not settings.provider_configured:
            if script_language is not None:
                self._notifier.warn_not_configured("chat", self._configuration_failure().kind)
            return EventOutcome.NOT_CONFIGURED, []

        channel = event.channel_type.strip().lower()
        if channel not in settings.enabled_chat_types:
            return EventOutcome.CHANNEL_DISABLED, []

        if any(marker in event.text for marker in OUTPUT_MARKERS):
            return EventOutcome.FEEDBACK_LOOP, []

        if self._is_self(event) and not settings.translate_own_messages:
            return EventOutcome.SELF_MESSAGE, []

        context_prefix = self._memory.snapshot(channel)
        self._memory.record(channel, event.sender, event.text, event.timestamp)

        jobs = self._enumerate_jobs(event.text, script_language, context_prefix)
        if not jobs:
            return EventOutcome.NO_JOBS, []
        return EventOutcome.DISPATCHED, jobs

    def _enumerate_jobs(
        self,
        text: str,
        script_language: str | None,
        context_prefix: str,
    ) -> list[TranslationJob]:
        targets = self._active_targets()
        jobs: list[TranslationJob] = []

        if script_language is not None and any(t.code == "English" for t in targets):
            # The primary job always uses the casual register.
            jobs.append(
                TranslationJob(
                    source_text=text,
                    source_language_hint=script_language,
                    target_language="English",
                    formal=False,
                    context_prefix=context_prefix,
                )
            )

        source = resolve_language(script_language) if script_language else None
        for target in targets:
            if target.code == "English":
                continue
            if source is not None and target.code == source.code:
                continue
            jobs.append(
                TranslationJob(
                    source_text=text,
                    source_language_hint=script_language or AUTO_DETECT,
                    target_language=target.code,
                    formal=self._settings.use_formal_language,
                    context_prefix=context_prefix,
                )
            )
        return jobs

    def _active_targets(self) -> list[LanguageTarget]:
        targets = enabled_targets(self._settings.enabled_languages)
        if len(targets) > MAX_ENABLED_LANGUAGES:
            self._logger.warning(
                "dispatch_language_cap_exceeded",
                extra={
                    "event": "language_cap_exceeded",
                    "enabled_languages": [t.code for t in targets],
                    "kept": [t.code for t in targets[:MAX_ENABLED_LANGUAGES]],
                },
            )
            targets = targets[:MAX_ENABLED_LANGUAGES]
        return targets

    def _is_self(self, event: ChatEvent) -> bool:
        if event.is_self:
            return True
        local_name = self._settings.local_player_name
        return bool(local_name) and event.sender == local_name

    def _configuration_failure(self) -> TranslationFailure:
        if not self._settings.api_key_configured:
            return TranslationFailure(FailureKind.MISSING_CREDENTIALS, "API key is missing")
        return TranslationFailure(FailureKind.MISSING_MODEL, "Model name is missing")

    def _count_filtered(self, outcome: EventOutcome) -> None:
        self._filtered_counts[outcome.value] += 1
        self._metrics.filtered_by_reason = dict(self._filtered_counts)
        self._logger.debug(
            "dispatch_event_filtered",
            extra={"event": "dispatch_event_filtered", "outcome": outcome.value},
        )

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        self._metrics.jobs_dispatched += 1

    @contextlib.asynccontextmanager
    async def _slot(self) -> AsyncIterator[None]:
        semaphore = self._semaphore
        if semaphore is None:
            yield
            return
        async with semaphore:
            yield

    async def _run_job(self, job: TranslationJob, delivery: _Delivery) -> None:
        started = monotonic()
        settings = self._settings
        try:
            async with self._slot():
                if job.target_language in settings.classifier_target_languages:
                    translate = await self._classifier.should_translate(
                        job.source_text,
                        job.target_language,
                        settings.openrouter_api_key or "",
                        settings.openrouter_model,
                    )
                    if not translate:
                        self._metrics.classifier_skips += 1
                        self._metrics.jobs_skipped += 1
                        return

                result = await self._client.translate_job(
                    job,
                    settings.openrouter_api_key,
                    settings.openrouter_model,
                )
            self._deliver(job, delivery, result, started)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._metrics.jobs_failed += 1
            self._metrics.last_error = repr(exc)
            self._logger.exception(
                "dispatch_job_crashed",
                extra={
                    "event": "dispatch_job_crashed",
                    "event_id": delivery.event_id,
                    "target_language": job.target_language,
                    "reason": repr(exc),
                },
            )

    def _deliver(
        self,
        job: TranslationJob,
        delivery: _Delivery,
        result: TranslationResult,
        started: float,
    ) -> None:
        if isinstance(result, TranslationFailure):
            self._metrics.jobs_failed += 1
            self._metrics.last_error = f"{result.kind.value}:{result.detail[:200]}"
            self._notifier.report(result, delivery.scope)
            return

        if not isinstance(result, TranslationSuccess):
            self._metrics.jobs_skipped += 1
            return

        self._sink.present(
            delivery.prefix_label,
            delivery.color_key,
            result.display_text,
            result.aux_text,
            delivery.channel,
        )

        latency_ms = round((monotonic() - started) * 1000.0, 3)
        created_at = datetime.now(timezone.utc)
        self._recent_results.append(
            DeliveredTranslation(
                event_id=delivery.event_id,
                channel=delivery.channel,
                sender=delivery.sender,
                source_language=job.source_language_hint,
                target_language=job.target_language,
                display_text=result.display_text,
                aux_text=result.aux_text,
                created_at=created_at,
                latency_ms=latency_ms,
                origin=delivery.origin,
            )
        )

        previous_count = self._metrics.jobs_succeeded
        previous_avg = self._metrics.average_latency_ms
        self._metrics.jobs_succeeded += 1
        self._metrics.last_result_at = created_at.isoformat()
        self._metrics.average_latency_ms = round(
            ((previous_avg * previous_count) + latency_ms) / self._metrics.jobs_succeeded,
            3,
        )
        self._logger.debug(
            "dispatch_result_delivered",
            extra={
                "event": "dispatch_result_delivered",
                "event_id": delivery.event_id,
                "target_language": job.target_language,
                "latency_ms": latency_ms,
            },
        )
