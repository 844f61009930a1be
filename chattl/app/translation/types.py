from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Union


class FailureKind(str, Enum):
    MISSING_CREDENTIALS = "missing_credentials"
    MISSING_MODEL = "missing_model"
    EMPTY_INPUT = "empty_input"
    NETWORK_ERROR = "network_error"
    MALFORMED_RESPONSE = "malformed_response"
    PROVIDER_ERROR = "provider_error"
    UNEXPECTED = "unexpected"

    @property
    def is_configuration(self) -> bool:
        return self in {FailureKind.MISSING_CREDENTIALS, FailureKind.MISSING_MODEL}


@dataclass(frozen=True)
class TranslationJob:
    source_text: str
    source_language_hint: str
    target_language: str
    formal: bool
    context_prefix: str = ""


@dataclass(frozen=True)
class TranslationSuccess:
    display_text: str
    aux_text: str | None = None


@dataclass(frozen=True)
class TranslationFailure:
    kind: FailureKind
    detail: str
    status_code: int | None = None


@dataclass(frozen=True)
class TranslationSkipped:
    reason: str = FailureKind.EMPTY_INPUT.value


TranslationResult = Union[TranslationSuccess, TranslationFailure, TranslationSkipped]


@dataclass(frozen=True)
class DeliveredTranslation:
    event_id: int
    channel: str
    sender: str
    source_language: str
    target_language: str
    display_text: str
    aux_text: str | None
    created_at: datetime
    latency_ms: float
    origin: str

    def to_dict(self) -> dict[str, object]:
        return {
            "event_id": self.event_id,
            "channel": self.channel,
            "sender": self.sender,
            "source_language": self.source_language,
            "target_language": self.target_language,
            "display_text": self.display_text,
            "aux_text": self.aux_text,
            "created_at": self.created_at.isoformat(),
            "latency_ms": self.latency_ms,
            "origin": self.origin,
        }
