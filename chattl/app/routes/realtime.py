from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Query, Request, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from chattl.app.routes.chat import ChatEventRequest, DirectCommandRequest

router = APIRouter(tags=["realtime"])

ACK_EVENT = "host.ack"
ERROR_EVENT = "host.error"


@router.get("/realtime/status")
def get_realtime_status(request: Request) -> dict[str, Any]:
    return request.app.state.realtime_manager.snapshot()


@router.get("/realtime/recent")
def get_recent_realtime_events(
    request: Request,
    limit: int = Query(default=20, ge=1, le=200),
    event: str | None = Query(default=None),
) -> dict[str, Any]:
    realtime_manager = request.app.state.realtime_manager
    results = realtime_manager.recent_events(limit=limit, event_type=event)
    return {"results": results, "count": len(results)}


def _handle_host_message(engine: Any, message: Any) -> dict[str, Any]:
    """Run one inbound host frame and build the acknowledgement payload.

    Frames are ``{"type": "chat_event", ...ChatEventRequest fields}`` or
    ``{"type": "command", "language": "jp", "args": "..."}``.
    """
    if not isinstance(message, dict):
        raise ValueError("frame must be a JSON object")

    frame_type = message.get("type")
    if frame_type == "chat_event":
        body = ChatEventRequest.model_validate(message)
        outcome = engine.on_chat_event(body.to_event())
        return {"type": frame_type, "outcome": outcome.value}

    if frame_type == "command":
        language = str(message.get("language") or "")
        body = DirectCommandRequest.model_validate(message)
        outcome = engine.on_direct_translate_command(language, body.args)
        return {"type": frame_type, "outcome": outcome.value}

    raise ValueError(f"unsupported frame type: {frame_type!r}")


@router.websocket("/ws/events")
async def events_websocket(websocket: WebSocket) -> None:
    realtime_manager = websocket.app.state.realtime_manager
    engine = websocket.app.state.dispatch_engine
    client_id = await realtime_manager.connect(websocket)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                ack = _handle_host_message(engine, json.loads(raw))
            except (ValueError, ValidationError) as exc:
                realtime_manager.reply(client_id, ERROR_EVENT, {"reason": str(exc)})
                continue
            realtime_manager.reply(client_id, ACK_EVENT, ack)
    except WebSocketDisconnect:
        pass
    finally:
        await realtime_manager.disconnect(client_id)