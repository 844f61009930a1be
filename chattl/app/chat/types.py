from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ChatChannel(str, Enum):
    SAY = "say"
    YELL = "yell"
    SHOUT = "shout"
    TELL_INCOMING = "tell_incoming"
    PARTY = "party"
    ALLIANCE = "alliance"
    FREE_COMPANY = "free_company"
    NOVICE_NETWORK = "novice_network"
    LS1 = "ls1"
    LS2 = "ls2"
    LS3 = "ls3"
    LS4 = "ls4"
    LS5 = "ls5"
    LS6 = "ls6"
    LS7 = "ls7"
    LS8 = "ls8"
    CWLS1 = "cwls1"
    CWLS2 = "cwls2"
    CWLS3 = "cwls3"
    CWLS4 = "cwls4"
    CWLS5 = "cwls5"
    CWLS6 = "cwls6"
    CWLS7 = "cwls7"
    CWLS8 = "cwls8"
    ECHO = "echo"


def _build_command_aliases() -> dict[str, ChatChannel]:
    aliases: dict[str, ChatChannel] = {
        "say": ChatChannel.SAY,
        "s": ChatChannel.SAY,
        "yell": ChatChannel.YELL,
        "y": ChatChannel.YELL,
        "shout": ChatChannel.SHOUT,
        "sh": ChatChannel.SHOUT,
        "tell": ChatChannel.TELL_INCOMING,
        "t": ChatChannel.TELL_INCOMING,
        "r": ChatChannel.TELL_INCOMING,
        "whisper": ChatChannel.TELL_INCOMING,
        "w": ChatChannel.TELL_INCOMING,
        "party": ChatChannel.PARTY,
        "p": ChatChannel.PARTY,
        "alliance": ChatChannel.ALLIANCE,
        "a": ChatChannel.ALLIANCE,
        "freecompany": ChatChannel.FREE_COMPANY,
        "fc": ChatChannel.FREE_COMPANY,
        "novice": ChatChannel.NOVICE_NETWORK,
        "beginner": ChatChannel.NOVICE_NETWORK,
        "echo": ChatChannel.ECHO,
        "e": ChatChannel.ECHO,
    }
    for index in range(1, 9):
        aliases[f"linkshell{index}"] = ChatChannel(f"ls{index}")
        aliases[f"ls{index}"] = ChatChannel(f"ls{index}")
        aliases[f"cwlinkshell{index}"] = ChatChannel(f"cwls{index}")
        aliases[f"cwls{index}"] = ChatChannel(f"cwls{index}")
    return aliases


COMMAND_CHANNEL_ALIASES = _build_command_aliases()


def resolve_command_channel(token: str) -> ChatChannel | None:
    return COMMAND_CHANNEL_ALIASES.get(token.strip().lower())


@dataclass(frozen=True)
class ChatEvent:
    channel_type: str
    sender: str
    text: str
    is_self: bool
    timestamp: datetime

    def to_dict(self) -> dict[str, object]:
        return {
            "channel_type": self.channel_type,
            "sender": self.sender,
            "text": self.text,
            "is_self": self.is_self,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class DirectCommand:
    target_language: str
    channel: ChatChannel
    text: str


def parse_command_args(target_language: str, raw_args: str) -> DirectCommand | None:
    """Split ``/jp party hello`` style arguments into channel and text.

    The first token only names a channel when it is a known alias and some
    text follows it; otherwise the whole argument string is the text.
    """
    stripped = raw_args.strip()
    if not stripped:
        return None

    channel = ChatChannel.SAY
    text = stripped
    head, _, rest = stripped.partition(" ")
    if rest.strip():
        resolved = resolve_command_channel(head)
        if resolved is not None:
            channel = resolved
            text = rest.strip()

    return DirectCommand(target_language=target_language, channel=channel, text=text)
