from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Request

router = APIRouter(tags=["health"])


@router.get("/health")
def get_health(request: Request) -> dict[str, Any]:
    settings = request.app.state.dispatch_engine.settings
    started_at = request.app.state.started_at
    engine_snapshot = request.app.state.dispatch_engine.snapshot()
    realtime_snapshot = request.app.state.realtime_manager.snapshot()
    now = datetime.now(timezone.utc)
    uptime_seconds = max(0.0, (now - started_at).total_seconds())

    return {
        "status": "ok",
        "service": settings.service_name,
        "version": settings.service_version,
        "environment": settings.environment,
        "started_at": started_at.isoformat(),
        "uptime_seconds": round(uptime_seconds, 3),
        "checks": {
            "translation_enabled": settings.enable_translation,
            "api_key_configured": settings.api_key_configured,
            "model_configured": settings.model_configured,
            "dispatch_running": engine_snapshot["running"],
            "jobs_in_flight": engine_snapshot["jobs_in_flight"],
            "realtime_running": realtime_snapshot["running"],
            "connected_clients": realtime_snapshot["connected_clients"],
        },
    }
