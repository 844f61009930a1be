from __future__ import annotations

from dataclasses import replace
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from chattl.app.settings import validate_enabled_languages

router = APIRouter(prefix="/settings", tags=["settings"])


class SettingsPatch(BaseModel):
    openrouter_api_key: str | None = None
    openrouter_model: str | None = None
    enable_translation: bool | None = None
    translate_own_messages: bool | None = None
    use_formal_language: bool | None = None
    enabled_chat_types: list[str] | None = None
    enabled_languages: list[str] | None = None
    enable_context_memory: bool | None = None
    max_context_messages: int | None = Field(default=None, ge=1, le=50)
    local_player_name: str | None = None


@router.get("")
def get_settings(request: Request) -> dict[str, Any]:
    return request.app.state.dispatch_engine.settings.redacted()


@router.patch("")
def patch_settings(request: Request, body: SettingsPatch) -> dict[str, Any]:
    engine = request.app.state.dispatch_engine
    changes = body.model_dump(exclude_unset=True)

    if "enabled_languages" in changes:
        try:
            changes["enabled_languages"] = validate_enabled_languages(
                tuple(changes["enabled_languages"] or ())
            )
        except ValueError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc

    if "enabled_chat_types" in changes:
        changes["enabled_chat_types"] = tuple(
            item.strip().lower() for item in changes["enabled_chat_types"] or () if item.strip()
        )

    if "openrouter_model" in changes:
        changes["openrouter_model"] = (changes["openrouter_model"] or "").strip()

    updated = replace(engine.settings, **changes)
    engine.apply_settings(updated)
    request.app.state.settings = updated
    return updated.redacted()
