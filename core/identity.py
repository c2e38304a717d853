# Display-name and mention translation between Discord and local chat
import re
from typing import Any

import aiohttp
import discord

NAMETAG_COLOR = "7289DAFF"
TAG_STRIP_REGEX = re.compile(r"<[^>]*>")


def strip_tags(text: str) -> str:
    return TAG_STRIP_REGEX.sub("", text)


def format_message_from_username(message: str, username: str) -> str:
    return f"**{username}**: {strip_tags(message)}"


def nametag(name: str) -> str:
    return f"<b><color=#{NAMETAG_COLOR}>{name}</color></b>"


def readable_content(message: Any) -> str:
    """Replace raw user, role and channel mention tokens with readable names.

    Users are looked up in the guild's current member cache; a mention that
    does not resolve is left as the raw token.
    """
    content = getattr(message, "content", None) or ""
    guild = getattr(message, "guild", None)
    for user in getattr(message, "mentions", None) or []:
        if user is None:
            continue
        member = guild.get_member(user.id) if guild is not None else None
        if member is None:
            continue
        name = f"@{member.display_name}"
        content = content.replace(f"<@{user.id}>", name).replace(f"<@!{user.id}>", name)
    for role in getattr(message, "role_mentions", None) or []:
        if role is None:
            continue
        content = content.replace(f"<@&{role.id}>", f"@{role.name}")
    for channel in getattr(message, "channel_mentions", None) or []:
        if channel is None:
            continue
        content = content.replace(f"<#{channel.id}>", f"#{channel.name}")
    return content


async def fetch_member(guild: Any, user_id: int):
    if guild is None:
        return None
    member = guild.get_member(user_id)
    if member is not None:
        return member
    try:
        return await guild.fetch_member(user_id)
    except (discord.DiscordException, aiohttp.ClientError):
        return None


async def author_nametag(message: Any) -> str:
    author = message.author
    member = await fetch_member(getattr(message, "guild", None), author.id)
    if member is not None:
        return nametag(member.display_name)
    return author.name
