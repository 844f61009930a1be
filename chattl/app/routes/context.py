from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Request

router = APIRouter(prefix="/context", tags=["context"])


@router.get("/{channel}")
def get_channel_context(request: Request, channel: str) -> dict[str, Any]:
    memory = request.app.state.dispatch_engine.memory
    key = channel.strip().lower()
    entries = memory.entries(key)
    return {
        "channel": key,
        "entries": [
            {
                "sender": entry.sender,
                "text": entry.text,
                "timestamp": entry.timestamp.isoformat(),
            }
            for entry in entries
        ],
        "count": len(entries),
    }


@router.delete("/{channel}")
def clear_channel_context(request: Request, channel: str) -> dict[str, Any]:
    engine = request.app.state.dispatch_engine
    cleared = engine.clear_context(channel)
    return {"channel": channel.strip().lower(), "cleared": cleared}


@router.delete("")
def clear_all_context(request: Request) -> dict[str, Any]:
    engine = request.app.state.dispatch_engine
    return {"cleared": engine.clear_context()}
