from __future__ import annotations

import logging

from chattl.app.translation.client import TranslationClient
from chattl.app.translation.types import FailureKind, TranslationFailure


def build_classifier_prompt(language: str) -> str:
    return (
        f"You decide whether a chat message is already written in {language}. "
        "Answer with exactly YES or NO and nothing else."
    )


class LanguageClassifier:
    """Secondary provider call asking whether text is already in a language.

    The answer only ever suppresses a job; any failure or unclear reply is
    treated as "not in that language" so the translation still runs.
    """

    def __init__(self, client: TranslationClient, logger: logging.Logger) -> None:
        self._client = client
        self._logger = logger

    async def classify(
        self,
        text: str,
        language: str,
        credentials: str,
        model: str,
    ) -> bool | TranslationFailure:
        reply = await self._client.complete(
            build_classifier_prompt(language),
            text,
            credentials,
            model,
        )
        if isinstance(reply, TranslationFailure):
            return reply

        answer = reply.strip().strip(".!").upper()
        if answer == "YES":
            return True
        if answer == "NO":
            return False
        return TranslationFailure(
            FailureKind.UNEXPECTED,
            f"ambiguous classifier reply: {reply.strip()[:40]}",
        )

    async def should_translate(
        self,
        text: str,
        language: str,
        credentials: str,
        model: str,
    ) -> bool:
        verdict = await self.classify(text, language, credentials, model)
        if isinstance(verdict, TranslationFailure):
            self._logger.info(
                "language_classifier_fail_open",
                extra={
                    "event": "classifier_fail_open",
                    "language": language,
                    "failure_kind": verdict.kind.value,
                    "reason": verdict.detail,
                },
            )
            return True
        return not verdict
