from __future__ import annotations

import asyncio
import logging
from collections import Counter, deque
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from fastapi import WebSocket

from chattl.app.settings import Settings

TRANSLATION_EVENT = "translation.result"
NOTIFICATION_EVENT = "notification"


@dataclass
class SurfaceMetrics:
    started_at: str | None = None
    running: bool = False
    healthy: bool = False
    connected_clients: int = 0
    total_clients_seen: int = 0
    events_emitted: int = 0
    events_dropped: int = 0
    send_failures: int = 0
    last_event_at: str | None = None
    last_error: str | None = None
    by_type: dict[str, int] = field(default_factory=dict)


class _HostConnection:
    def __init__(self, client_id: int, websocket: WebSocket, maxsize: int) -> None:
        self.client_id = client_id
        self.websocket = websocket
        self.outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=max(1, maxsize))
        self.sender: asyncio.Task[None] | None = None

    def offer(self, event: dict[str, Any]) -> int:
        evicted = 0
        while self.outbox.full():
            try:
                self.outbox.get_nowait()
            except asyncio.QueueEmpty:
                break
            self.outbox.task_done()
            evicted += 1
        self.outbox.put_nowait(event)
        return evicted

    async def close(self) -> None:
        if self.sender is not None and self.sender is not asyncio.current_task():
            self.sender.cancel()
            try:
                await self.sender
            except asyncio.CancelledError:
                pass

        try:
            await self.websocket.close()
        except Exception:
            # Already closed by the peer.
            pass


class RealtimeEventManager:
    """Host-facing display surface.

    Translations go out as ``translation.result`` events and user notices as
    ``notification`` events. Publishing is synchronous and never blocks a
    caller: a slow client loses its oldest queued events instead. It must be
    called on the event loop that owns the client connections.
    """

    def __init__(self, settings: Settings, logger: logging.Logger) -> None:
        self._settings = settings
        self._logger = logger
        self._metrics = SurfaceMetrics()
        self._connections: dict[int, _HostConnection] = {}
        self._history: deque[dict[str, Any]] = deque(
            maxlen=max(1, settings.realtime_recent_events_limit)
        )
        self._type_counts: Counter[str] = Counter()
        self._next_client_id = 1
        self._closing = False

    async def start(self) -> None:
        self._closing = False
        self._metrics.started_at = datetime.now(timezone.utc).isoformat()
        self._metrics.running = True
        self._metrics.healthy = True
        self._metrics.last_error = None

    async def stop(self) -> None:
        self._closing = True
        for client_id in list(self._connections):
            await self.disconnect(client_id)
        self._metrics.running = False
        self._metrics.healthy = False

    async def connect(self, websocket: WebSocket) -> int:
        await websocket.accept()
        client_id = self._next_client_id
        self._next_client_id += 1

        connection = _HostConnection(
            client_id,
            websocket,
            self._settings.realtime_client_queue_maxsize,
        )
        self._connections[client_id] = connection
        self._metrics.connected_clients = len(self._connections)
        self._metrics.total_clients_seen += 1
        connection.sender = asyncio.create_task(
            self._pump(connection),
            name=f"chattl-display-sender-{client_id}",
        )
        self._logger.info(
            "realtime_client_connected",
            extra={"event": "realtime_client_connected", "client_id": client_id},
        )
        return client_id

    async def disconnect(self, client_id: int) -> None:
        connection = self._connections.pop(client_id, None)
        self._metrics.connected_clients = len(self._connections)
        if connection is not None:
            await connection.close()

    def present(
        self,
        prefix_label: str,
        color_key: str,
        display_text: str,
        aux_text: str | None = None,
        channel: str | None = None,
    ) -> None:
        self.publish(
            TRANSLATION_EVENT,
            {
                "prefix_label": prefix_label,
                "color_key": color_key,
                "display_text": display_text,
                "aux_text": aux_text,
                "channel": channel,
            },
        )

    def notify(self, message: str, level: str, category: str) -> None:
        self.publish(
            NOTIFICATION_EVENT,
            {"message": message, "level": level, "category": category},
        )

    def publish(self, event_type: str, payload: dict[str, Any]) -> None:
        timestamp = datetime.now(timezone.utc).isoformat()
        event = {"event": event_type, "timestamp": timestamp, "payload": payload}
        self._history.append(event)
        self._type_counts[event_type] += 1
        self._metrics.events_emitted += 1
        self._metrics.last_event_at = timestamp
        self._metrics.by_type = dict(self._type_counts)

        for connection in list(self._connections.values()):
            self._metrics.events_dropped += connection.offer(event)

    def reply(self, client_id: int, event_type: str, payload: dict[str, Any]) -> bool:
        connection = self._connections.get(client_id)
        if connection is None:
            return False
        event = {
            "event": event_type,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "payload": payload,
        }
        self._metrics.events_dropped += connection.offer(event)
        return True

    def snapshot(self) -> dict[str, Any]:
        payload = asdict(self._metrics)
        payload["recent_events_count"] = len(self._history)
        payload["connected_client_ids"] = sorted(self._connections)
        return payload

    def recent_events(self, limit: int = 20, event_type: str | None = None) -> list[dict[str, Any]]:
        bounded = max(1, min(limit, 200))
        matching = [
            event
            for event in reversed(self._history)
            if event_type is None or event["event"] == event_type
        ]
        return matching[:bounded]

    async def _pump(self, connection: _HostConnection) -> None:
        while not self._closing:
            event = await connection.outbox.get()
            try:
                await connection.websocket.send_json(event)
            except Exception as exc:
                self._metrics.send_failures += 1
                self._metrics.last_error = str(exc)
                self._logger.warning(
                    "realtime_client_send_failed",
                    extra={
                        "event": "realtime_send_failed",
                        "client_id": connection.client_id,
                        "reason": str(exc),
                    },
                )
                break
            finally:
                connection.outbox.task_done()

        if not self._closing:
            await self.disconnect(connection.client_id)
