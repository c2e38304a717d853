# Core data models for the DiscordLink bridge
import enum
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class ChannelLink:
    # Guild and channel are a name or a snowflake id. Case sensitive.
    discord_guild: str
    discord_channel: str
    local_channel: str


@dataclass
class DefaultChannel:
    guild: Optional[str] = None
    channel: Optional[str] = None


@dataclass
class PlayerConfig:
    username: str
    default_channel: DefaultChannel = field(default_factory=DefaultChannel)


@dataclass(frozen=True)
class BridgeSettings:
    token: str = ""
    channel_links: List[ChannelLink] = field(default_factory=list)
    player_configs: List[PlayerConfig] = field(default_factory=list)
    debug: bool = False
    connect_timeout: float = 30.0


@dataclass(frozen=True)
class ChatMessage:
    text: str
    sender: str
    tag: str
    category: str = "Chat"
    temporary: bool = False


@dataclass(frozen=True)
class LocalIdentity:
    stable_key: str
    name: str


class ConnectionState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    FAILED = "failed"
    DISCONNECTED = "disconnected"


@dataclass
class RelayStats:
    forwarded_to_remote: int = 0
    forwarded_to_local: int = 0
    dropped_no_link: int = 0
    dropped_loop: int = 0
    dropped_command: int = 0
    dropped_empty_sender: int = 0
    send_failures: int = 0
