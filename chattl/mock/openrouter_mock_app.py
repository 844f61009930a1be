from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    return float(raw)


@dataclass
class MockState:
    request_count: int = 0
    failure_start_request: int = -1
    failure_span_requests: int = 0
    failure_status_code: int = 503
    malformed_every: int = 0
    reply_delay_seconds: float = 0.0

    def should_fail(self) -> bool:
        if self.failure_start_request < 0 or self.failure_span_requests <= 0:
            return False

        end = self.failure_start_request + self.failure_span_requests
        return self.failure_start_request <= self.request_count < end

    def should_malform(self) -> bool:
        return self.malformed_every > 0 and self.request_count % self.malformed_every == 0


def _reply_for(body: dict[str, Any]) -> str:
    messages = body.get("messages") or []
    system_prompt = ""
    user_content = ""
    for message in messages:
        if message.get("role") == "system":
            system_prompt = str(message.get("content", ""))
        elif message.get("role") == "user":
            user_content = str(message.get("content", ""))

    if "YES or NO" in system_prompt:
        return "NO"

    text = user_content.splitlines()[-1].strip() if user_content else ""
    reply = f"[openrouter-mock] {text}"
    if "' || " in system_prompt:
        reply = f"{reply} || mock-romanized"
    return reply


def create_mock_app() -> FastAPI:
    app = FastAPI(title="OpenRouter Mock Completions")

    state = MockState(
        failure_start_request=_env_int("OPENROUTER_MOCK_FAILURE_START_REQUEST", -1),
        failure_span_requests=_env_int("OPENROUTER_MOCK_FAILURE_SPAN_REQUESTS", 0),
        failure_status_code=_env_int("OPENROUTER_MOCK_FAILURE_STATUS_CODE", 503),
        malformed_every=_env_int("OPENROUTER_MOCK_MALFORMED_EVERY", 0),
        reply_delay_seconds=_env_float("OPENROUTER_MOCK_REPLY_DELAY_SECONDS", 0.0),
    )
    app.state.mock_state = state

    @app.get("/health")
    async def health() -> dict[str, object]:
        return {
            "status": "ok",
            "request_count": state.request_count,
            "failure_start_request": state.failure_start_request,
            "failure_span_requests": state.failure_span_requests,
            "malformed_every": state.malformed_every,
            "reply_delay_seconds": state.reply_delay_seconds,
        }

    @app.post("/api/v1/chat/completions")
    async def chat_completions(request: Request) -> Response:
        state.request_count += 1

        if not request.headers.get("authorization", "").startswith("Bearer "):
            return JSONResponse(status_code=401, content={"error": {"message": "missing key"}})

        if state.reply_delay_seconds > 0:
            await asyncio.sleep(state.reply_delay_seconds)

        if state.should_fail():
            return JSONResponse(
                status_code=state.failure_status_code,
                content={"error": {"message": "mock upstream unavailable"}},
            )

        if state.should_malform():
            return JSONResponse(content={"id": f"mock-{state.request_count}", "choices": []})

        body = await request.json()
        return JSONResponse(
            content={
                "id": f"mock-{state.request_count}",
                "model": body.get("model"),
                "choices": [
                    {
                        "index": 0,
                        "message": {"role": "assistant", "content": _reply_for(body)},
                        "finish_reason": "stop",
                    }
                ],
            }
        )

    return app


app = create_mock_app()
