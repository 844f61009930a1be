from __future__ import annotations

import asyncio
import hashlib

from chattl.app.translation.providers.base import CompletionProvider, CompletionRequest

MOCK_AUX_WORDS = ["konnichiwa", "arigatou", "ni hao", "xie xie", "annyeong"]


class MockCompletionProvider(CompletionProvider):
    def __init__(self, delay_seconds: float = 0.0) -> None:
        self._delay_seconds = max(0.0, delay_seconds)

    @property
    def name(self) -> str:
        return "mock-completion-provider"

    async def complete(self, request: CompletionRequest) -> str:
        if self._delay_seconds > 0:
            await asyncio.sleep(self._delay_seconds)

        if "answer with exactly yes or no" in request.system_prompt.lower():
            return "NO"

        message = request.user_content.splitlines()[-1].strip()
        seed = hashlib.sha256(request.user_content.encode("utf-8")).hexdigest()
        translated = f"[mock:{request.model}] {message}"
        if "' || " in request.system_prompt:
            aux = MOCK_AUX_WORDS[int(seed[:8], 16) % len(MOCK_AUX_WORDS)]
            return f"{translated} || {aux}"
        return translated
