"""Shared fakes and fixtures for the DiscordLink test suite."""

import asyncio
import logging
from types import SimpleNamespace
from unittest.mock import MagicMock

import discord
import pytest

from core.channel_links import ChannelLinkRegistry
from core.message_router import MessageRouter
from core.models import ChannelLink
from services.local_chat import LocalChat
from transports.discord_client import DiscordClient

BOT_USER_ID = 999


def not_found(message="Unknown Member"):
    return discord.NotFound(MagicMock(status=404, reason="Not Found"), message)


class FakeChannel(discord.abc.Messageable):
    """Text channel double; subclasses Messageable so sends are accepted."""

    def __init__(self, channel_id, name, guild=None, fail_with=None):
        self.id = channel_id
        self.name = name
        self.guild = guild
        self.fail_with = fail_with
        self.sent = []

    async def send(self, content):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append(content)


class FakeGuild:
    def __init__(self, guild_id, name, channels=(), members=(), roles=(), other_channels=()):
        self.id = guild_id
        self.name = name
        self.text_channels = list(channels)
        self.other_channels = list(other_channels)
        for channel in self.text_channels:
            channel.guild = self
        self.members = {member.id: member for member in members}
        self.roles = list(roles)
        self.fetch_calls = 0

    def get_channel(self, channel_id):
        return discord.utils.get(self.text_channels + self.other_channels, id=channel_id)

    def get_member(self, user_id):
        return self.members.get(user_id)

    async def fetch_member(self, user_id):
        self.fetch_calls += 1
        member = self.members.get(user_id)
        if member is None:
            raise not_found()
        return member


class FakeBot:
    """Stands in for commands.Bot: records logins, listeners and closes."""

    def __init__(self, guilds=(), valid_tokens=None, ready=True):
        self.user = SimpleNamespace(id=BOT_USER_ID, name="DiscordLink")
        self.guilds = list(guilds)
        self.valid_tokens = valid_tokens
        self.becomes_ready = ready
        self.events = {}
        self.listeners = {}
        self.login_tokens = []
        self.login_errors = []
        self.close_calls = 0
        self.connect_calls = 0
        self._ready = asyncio.Event()
        self._closed = asyncio.Event()

    def event(self, coro):
        self.events[coro.__name__] = coro
        return coro

    async def login(self, token):
        self.login_tokens.append(token)
        if self.valid_tokens is not None and token not in self.valid_tokens:
            error = discord.LoginFailure("Improper token has been passed.")
            self.login_errors.append(error)
            raise error

    async def connect(self, reconnect=True):
        self.connect_calls += 1
        if self.becomes_ready:
            self._ready.set()
        await self._closed.wait()

    async def wait_until_ready(self):
        await self._ready.wait()

    async def close(self):
        self.close_calls += 1
        self._closed.set()

    def add_listener(self, func, name):
        self.listeners.setdefault(name, []).append(func)

    def remove_listener(self, func, name):
        self.listeners.get(name, []).remove(func)

    def get_guild(self, guild_id):
        return discord.utils.get(self.guilds, id=guild_id)


def make_member(user_id, display_name, name=None):
    return SimpleNamespace(id=user_id, display_name=display_name, name=name or display_name.lower())


def make_remote_message(content, channel, author, mentions=(), role_mentions=(), channel_mentions=(), message_id=1):
    return SimpleNamespace(
        id=message_id,
        content=content,
        channel=channel,
        guild=channel.guild,
        author=author,
        mentions=list(mentions),
        role_mentions=list(role_mentions),
        channel_mentions=list(channel_mentions),
    )


@pytest.fixture
def logger():
    return logging.getLogger("DiscordLink.tests")


@pytest.fixture
def general_channel():
    return FakeChannel(555, "general")


@pytest.fixture
def guild(general_channel):
    alice = make_member(123, "Alice", name="alice_base")
    return FakeGuild(42, "G", channels=[general_channel, FakeChannel(556, "trade")], members=[alice])


@pytest.fixture
def fake_bot(guild):
    return FakeBot(guilds=[guild])


@pytest.fixture
def bot_factory(fake_bot):
    bots = [fake_bot]

    def factory():
        # First build returns the shared fixture bot; rebuilds get fresh ones.
        if bots:
            return bots.pop()
        return FakeBot(guilds=list(fake_bot.guilds))

    return factory


@pytest.fixture
def registry(logger):
    return ChannelLinkRegistry([ChannelLink("G", "general", "Global")], logger=logger)


@pytest.fixture
def local_chat(logger):
    return LocalChat(logger)


@pytest.fixture
def discord_client(logger, bot_factory):
    return DiscordClient(lambda: "good-token", logger, bot_factory=bot_factory, connect_timeout=1.0)


@pytest.fixture
def router(registry, discord_client, local_chat, logger):
    router = MessageRouter(registry, discord_client, local_chat, logger)
    discord_client.attach_relay(router)
    return router
