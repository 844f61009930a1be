from __future__ import annotations

from typing import Callable

import httpx
from pydantic import BaseModel, Field, ValidationError

from chattl.app.settings import Settings
from chattl.app.translation.providers.base import (
    CompletionProvider,
    CompletionRequest,
    ProviderNetworkError,
    ProviderResponseError,
    ProviderStatusError,
)


class CompletionMessage(BaseModel):
    role: str | None = None
    content: str


class CompletionChoice(BaseModel):
    message: CompletionMessage


class CompletionResponse(BaseModel):
    choices: list[CompletionChoice] = Field(min_length=1)


class OpenRouterCompletionProvider(CompletionProvider):
    def __init__(
        self,
        settings: Settings,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self._endpoint = f"{settings.openrouter_api_base_url.rstrip('/')}/chat/completions"
        self._timeout_seconds = settings.translation_timeout_seconds
        self._title = settings.service_name
        self._client_factory = client_factory
        self._client: httpx.AsyncClient | None = None

    @property
    def name(self) -> str:
        return "openrouter-completion-provider"

    async def complete(self, request: CompletionRequest) -> str:
        client = self._ensure_client()
        headers = {
            "Authorization": f"Bearer {request.api_key}",
            "X-Title": self._title,
        }
        body = {"model": request.model, "messages": request.messages()}

        try:
            response = await client.post(self._endpoint, headers=headers, json=body)
        except httpx.RequestError as exc:
            raise ProviderNetworkError(f"openrouter_request_error:{exc!r}") from exc

        if not response.is_success:
            raise ProviderStatusError(response.status_code, response.text)

        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderResponseError("openrouter_invalid_json") from exc

        try:
            parsed = CompletionResponse.model_validate(payload)
        except ValidationError as exc:
            raise ProviderResponseError(
                f"openrouter_unexpected_shape:{exc.error_count()}_errors"
            ) from exc

        return parsed.choices[0].message.content

    async def aclose(self) -> None:
        if self._client is None:
            return
        await self._client.aclose()
        self._client = None

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            if self._client_factory is not None:
                self._client = self._client_factory()
            else:
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self._timeout_seconds)
                )
        return self._client
