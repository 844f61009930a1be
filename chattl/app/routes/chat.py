from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request, status
from pydantic import BaseModel, Field

from chattl.app.chat.types import ChatEvent

router = APIRouter(prefix="/chat", tags=["chat"])


class ChatEventRequest(BaseModel):
    channel_type: str = Field(min_length=1)
    sender: str = ""
    text: str
    is_self: bool = False
    timestamp: datetime | None = None

    def to_event(self) -> ChatEvent:
        return ChatEvent(
            channel_type=self.channel_type,
            sender=self.sender,
            text=self.text,
            is_self=self.is_self,
            timestamp=self.timestamp or datetime.now(timezone.utc),
        )


class DirectCommandRequest(BaseModel):
    args: str = ""


@router.post("/events", status_code=status.HTTP_202_ACCEPTED)
async def post_chat_event(request: Request, body: ChatEventRequest) -> dict[str, Any]:
    engine = request.app.state.dispatch_engine
    outcome = engine.on_chat_event(body.to_event())
    return {"accepted": True, "outcome": outcome.value}


@router.post("/commands/{language}", status_code=status.HTTP_202_ACCEPTED)
async def post_direct_command(
    request: Request,
    language: str,
    body: DirectCommandRequest,
) -> dict[str, Any]:
    engine = request.app.state.dispatch_engine
    outcome = engine.on_direct_translate_command(language, body.args)
    return {"accepted": True, "outcome": outcome.value}
