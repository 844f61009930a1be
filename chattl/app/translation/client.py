from __future__ import annotations

import logging

from chattl.app.translation.prompts import PromptPlan, build_prompt, parse_completion
from chattl.app.translation.providers.base import (
    CompletionProvider,
    CompletionRequest,
    ProviderNetworkError,
    ProviderResponseError,
    ProviderStatusError,
)
from chattl.app.translation.types import (
    FailureKind,
    TranslationFailure,
    TranslationJob,
    TranslationResult,
    TranslationSkipped,
    TranslationSuccess,
)


class TranslationClient:
    def __init__(self, provider: CompletionProvider, logger: logging.Logger) -> None:
        self._provider = provider
        self._logger = logger
        self._requests_sent = 0

    @property
    def provider_name(self) -> str:
        return self._provider.name

    @property
    def requests_sent(self) -> int:
        return self._requests_sent

    async def translate(
        self,
        text: str,
        credentials: str | None,
        model: str | None,
        source_hint: str,
        target_language: str,
        formal: bool,
        context_prefix: str = "",
    ) -> TranslationResult:
        precondition = self._check_preconditions(text, credentials, model)
        if precondition is not None:
            return precondition

        plan = build_prompt(source_hint, target_language, formal, context_prefix)
        content = await self.complete(
            plan.system_prompt,
            plan.render_user_content(text),
            credentials or "",
            model or "",
        )
        if isinstance(content, TranslationFailure):
            return content

        return self._to_success(content, plan)

    async def translate_job(
        self,
        job: TranslationJob,
        credentials: str | None,
        model: str | None,
    ) -> TranslationResult:
        return await self.translate(
            job.source_text,
            credentials,
            model,
            job.source_language_hint,
            job.target_language,
            job.formal,
            job.context_prefix,
        )

    async def complete(
        self,
        system_prompt: str,
        user_content: str,
        credentials: str,
        model: str,
    ) -> str | TranslationFailure:
        request = CompletionRequest(
            api_key=credentials.strip(),
            model=model.strip(),
            system_prompt=system_prompt,
            user_content=user_content,
        )
        self._requests_sent += 1
        try:
            return await self._provider.complete(request)
        except ProviderNetworkError as exc:
            self._logger.error(
                "translation_network_error",
                extra={"event": "translation_network_error", "reason": str(exc)},
            )
            return TranslationFailure(FailureKind.NETWORK_ERROR, str(exc))
        except ProviderStatusError as exc:
            self._logger.error(
                "translation_provider_error",
                extra={
                    "event": "translation_provider_error",
                    "status_code": exc.status_code,
                    "body": exc.body,
                },
            )
            return TranslationFailure(
                FailureKind.PROVIDER_ERROR,
                exc.body,
                status_code=exc.status_code,
            )
        except ProviderResponseError as exc:
            self._logger.warning(
                "translation_malformed_response",
                extra={"event": "translation_malformed_response", "reason": str(exc)},
            )
            return TranslationFailure(FailureKind.MALFORMED_RESPONSE, str(exc))
        except Exception as exc:
            self._logger.exception(
                "translation_unexpected_error",
                extra={"event": "translation_unexpected_error", "reason": repr(exc)},
            )
            return TranslationFailure(FailureKind.UNEXPECTED, repr(exc))

    async def aclose(self) -> None:
        await self._provider.aclose()

    def _check_preconditions(
        self,
        text: str,
        credentials: str | None,
        model: str | None,
    ) -> TranslationResult | None:
        if not (credentials or "").strip():
            self._logger.warning(
                "translation_missing_api_key",
                extra={"event": "translation_missing_credentials"},
            )
            return TranslationFailure(FailureKind.MISSING_CREDENTIALS, "API key is missing")
        if not (model or "").strip():
            self._logger.warning(
                "translation_missing_model",
                extra={"event": "translation_missing_model"},
            )
            return TranslationFailure(FailureKind.MISSING_MODEL, "Model name is missing")
        if not text or not text.strip():
            self._logger.debug(
                "translation_empty_input_skipped",
                extra={"event": "translation_empty_input"},
            )
            return TranslationSkipped()
        return None

    def _to_success(self, content: str, plan: PromptPlan) -> TranslationResult:
        display_text, aux_text = parse_completion(content, plan.expects_aux_field)
        if not display_text:
            return TranslationFailure(
                FailureKind.MALFORMED_RESPONSE,
                "provider returned empty completion",
            )

        self._logger.debug(
            "translation_succeeded",
            extra={
                "event": "translation_succeeded",
                "prompt_rule": plan.rule,
                "has_aux": aux_text is not None,
            },
        )
        return TranslationSuccess(display_text=display_text, aux_text=aux_text)
