from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone

CONTEXT_HEADER = "Recent messages in this channel (for context only, do not translate):"


@dataclass(frozen=True)
class ContextEntry:
    sender: str
    text: str
    timestamp: datetime


@dataclass
class ChannelContext:
    channel_key: str
    entries: deque[ContextEntry]
    lock: threading.Lock = field(default_factory=threading.Lock)


class ContextMemoryStore:
    """Bounded per-channel history used to enrich translation prompts.

    Each channel keeps at most ``max_messages`` entries; the oldest entry is
    evicted first. Channels are created lazily on first record and live until
    cleared.
    """

    def __init__(self, max_messages: int = 3, enabled: bool = True) -> None:
        self._max_messages = max(1, max_messages)
        self._enabled = enabled
        self._channels: dict[str, ChannelContext] = {}
        self._map_lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def max_messages(self) -> int:
        return self._max_messages

    def configure(self, max_messages: int, enabled: bool) -> None:
        self._enabled = enabled
        new_max = max(1, max_messages)
        if new_max == self._max_messages:
            return

        self._max_messages = new_max
        with self._map_lock:
            channels = list(self._channels.values())
        for channel in channels:
            with channel.lock:
                channel.entries = deque(channel.entries, maxlen=new_max)

    def record(
        self,
        channel_key: str,
        sender: str,
        text: str,
        timestamp: datetime | None = None,
    ) -> None:
        if not self._enabled:
            return

        entry = ContextEntry(
            sender=sender,
            text=text,
            timestamp=timestamp or datetime.now(timezone.utc),
        )
        channel = self._channel(channel_key)
        with channel.lock:
            channel.entries.append(entry)

    def snapshot(self, channel_key: str) -> str:
        if not self._enabled:
            return ""

        with self._map_lock:
            channel = self._channels.get(channel_key)
        if channel is None:
            return ""

        with channel.lock:
            entries = list(channel.entries)
        if not entries:
            return ""

        lines = [CONTEXT_HEADER]
        lines.extend(f"{entry.sender}: {entry.text}" for entry in entries)
        return "\n".join(lines)

    def entries(self, channel_key: str) -> list[ContextEntry]:
        with self._map_lock:
            channel = self._channels.get(channel_key)
        if channel is None:
            return []
        with channel.lock:
            return list(channel.entries)

    def clear(self, channel_key: str) -> bool:
        with self._map_lock:
            return self._channels.pop(channel_key, None) is not None

    def clear_all(self) -> int:
        with self._map_lock:
            count = len(self._channels)
            self._channels.clear()
        return count

    def channel_keys(self) -> list[str]:
        with self._map_lock:
            return sorted(self._channels.keys())

    def _channel(self, channel_key: str) -> ChannelContext:
        with self._map_lock:
            channel = self._channels.get(channel_key)
            if channel is None:
                channel = ChannelContext(
                    channel_key=channel_key,
                    entries=deque(maxlen=self._max_messages),
                )
                self._channels[channel_key] = channel
            return channel
