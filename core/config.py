from __future__ import annotations

import json
from typing import Any, Dict, List

from core.models import BridgeSettings, ChannelLink, DefaultChannel, PlayerConfig


class ConfigError(Exception):
    pass


def _optional_str(value: Any):
    if value is None:
        return None
    return str(value)


def settings_from_dict(raw: Dict[str, Any]) -> BridgeSettings:
    if not isinstance(raw, dict):
        raise ConfigError("Config root must be a JSON object")

    discord_raw = raw.get("discord", {})
    links_raw = raw.get("channel_links", [])
    players_raw = raw.get("player_configs", [])

    channel_links: List[ChannelLink] = []
    for item in links_raw:
        channel_links.append(
            ChannelLink(
                discord_guild=str(item.get("discord_guild", "")),
                discord_channel=str(item.get("discord_channel", "")),
                local_channel=str(item.get("local_channel", "")),
            )
        )

    player_configs: List[PlayerConfig] = []
    for item in players_raw:
        default_raw = item.get("default_channel") or {}
        player_configs.append(
            PlayerConfig(
                username=str(item.get("username", "")),
                default_channel=DefaultChannel(
                    guild=_optional_str(default_raw.get("guild")),
                    channel=_optional_str(default_raw.get("channel")),
                ),
            )
        )

    try:
        connect_timeout = float(discord_raw.get("connect_timeout", 30.0))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid discord.connect_timeout: {exc}") from exc

    return BridgeSettings(
        token=str(discord_raw.get("token", "") or ""),
        channel_links=channel_links,
        player_configs=player_configs,
        debug=bool(raw.get("debug", False)),
        connect_timeout=connect_timeout,
    )


def settings_to_dict(settings: BridgeSettings) -> Dict[str, Any]:
    return {
        "discord": {
            "token": settings.token,
            "connect_timeout": settings.connect_timeout,
        },
        "debug": settings.debug,
        "channel_links": [
            {
                "discord_guild": link.discord_guild,
                "discord_channel": link.discord_channel,
                "local_channel": link.local_channel,
            }
            for link in settings.channel_links
        ],
        "player_configs": [
            {
                "username": player.username,
                "default_channel": {
                    "guild": player.default_channel.guild,
                    "channel": player.default_channel.channel,
                },
            }
            for player in settings.player_configs
        ],
    }


def load_config(path: str) -> BridgeSettings:
    """Read the JSON config at ``path``. A missing file yields defaults."""
    try:
        with open(path, "r", encoding="utf-8") as handle:
            raw = json.load(handle)
    except FileNotFoundError:
        raw = {}
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Config file {path} is not valid JSON: {exc}") from exc

    return settings_from_dict(raw)
