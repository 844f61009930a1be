from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


class TranslationProviderError(Exception):
    """Raised when a completion provider call fails."""


class ProviderNetworkError(TranslationProviderError):
    pass


class ProviderStatusError(TranslationProviderError):
    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"provider_status_error:{status_code}")
        self.status_code = status_code
        self.body = body


class ProviderResponseError(TranslationProviderError):
    pass


@dataclass(frozen=True)
class CompletionRequest:
    api_key: str
    model: str
    system_prompt: str
    user_content: str

    def messages(self) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": self.user_content},
        ]


class CompletionProvider(ABC):
    @property
    @abstractmethod
    def name(self) -> str:
        raise NotImplementedError

    @abstractmethod
    async def complete(self, request: CompletionRequest) -> str:
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
