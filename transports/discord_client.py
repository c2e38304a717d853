# Discord transport client: owns the bot handle and its connection lifecycle
import asyncio
from typing import Callable, List, Optional

import aiohttp
import discord
from discord.ext import commands

from core.identity import format_message_from_username
from core.models import ConnectionState

COMMAND_PREFIX = "?"
# Whitespace isn't a legal token; this one fails as an auth error instead of crashing setup.
PLACEHOLDER_TOKEN = "ThisTokenWillNeverWork"

STATUS_NO_ATTEMPT = "No Connection Attempt Made"
STATUS_SETTING_UP = "Setting up client"
STATUS_CONNECTING = "Attempting connection..."
STATUS_CONNECTED = "Connection successful"
STATUS_FAILED = "Connection failed"

SEND_OK = "Message sent successfully!"
SEND_NO_CLIENT = "No discord client"
SEND_NO_GUILD = "No guild of that name found"
SEND_NO_CHANNEL = "No channel of that name or ID found in that guild"
SEND_FAILED = "Message failed to send"


def default_bot_factory():
    return commands.Bot(command_prefix=COMMAND_PREFIX, intents=discord.Intents.all())


def is_snowflake(ref: Optional[str]) -> bool:
    # ASCII only; isdigit() alone accepts superscripts int() rejects.
    return bool(ref) and ref.isascii() and ref.isdigit()


class DiscordClient:
    def __init__(self, token_source: Callable[[], str], logger, bot_factory=None, connect_timeout: float = 30.0):
        self.token_source = token_source
        self.logger = logger
        self.bot_factory = bot_factory or default_bot_factory
        self.connect_timeout = connect_timeout
        self.bot = None
        self.relay = None
        self.state = ConnectionState.UNINITIALIZED
        self.current_token: Optional[str] = None
        self._login_token: Optional[str] = None
        self._status = STATUS_NO_ATTEMPT
        self._status_listeners: List[Callable[[str], None]] = []
        self._runner: Optional[asyncio.Task] = None
        self._build()

    # --- status -------------------------------------------------------------

    @property
    def status(self) -> str:
        return self._status

    def add_status_listener(self, callback: Callable[[str], None]):
        self._status_listeners.append(callback)

    def _set_status(self, status: str):
        self._status = status
        for listener in list(self._status_listeners):
            try:
                listener(status)
            except Exception as exc:
                self.logger.error(f"Status listener failed: {exc}", exc_info=True)

    # --- lifecycle ----------------------------------------------------------

    def attach_relay(self, relay):
        self.relay = relay

    @property
    def connected(self) -> bool:
        return self.bot is not None and self.state is ConnectionState.CONNECTED

    @property
    def user(self):
        return getattr(self.bot, "user", None) if self.bot is not None else None

    def _build(self) -> bool:
        self._set_status(STATUS_SETTING_UP)
        token = self.token_source() or ""
        self.current_token = token
        self._login_token = token if token.strip() else PLACEHOLDER_TOKEN
        try:
            bot = self.bot_factory()
            self._register_events(bot)
        except Exception as exc:
            self.logger.error(f"Unable to create the discord client: {exc}", exc_info=True)
            self.bot = None
            return False
        self.bot = bot
        self.state = ConnectionState.UNINITIALIZED
        return True

    def _register_events(self, bot):
        @bot.event
        async def on_ready():
            self.logger.info(f"Connected and ready as {bot.user}")

        @bot.event
        async def on_resumed():
            self.logger.info("Resumed connection")

        @bot.event
        async def on_disconnect():
            self.logger.debug("Socket closed")

        @bot.event
        async def on_error(event_method, *args, **kwargs):
            self.logger.error(f"Discord client error in {event_method}", exc_info=True)

    async def connect(self) -> bool:
        if self.bot is None:
            self.logger.error("Cannot connect, no discord client was built")
            self.state = ConnectionState.FAILED
            self._set_status(STATUS_FAILED)
            return False
        if self.state in (ConnectionState.CONNECTING, ConnectionState.CONNECTED):
            # One gateway session per bot; a second would double every on_message.
            self.logger.debug(f"Connect skipped, client is already {self.state.name.lower()}")
            return True
        self.state = ConnectionState.CONNECTING
        self._set_status(STATUS_CONNECTING)
        try:
            await self.bot.login(self._login_token)
            self._runner = asyncio.create_task(self.bot.connect(reconnect=True))
            await self._wait_until_ready()
        except Exception as exc:
            self.logger.error(f"Error connecting to discord: {exc}", exc_info=True)
            await self._stop_runner()
            self.state = ConnectionState.FAILED
            self._set_status(STATUS_FAILED)
            return False
        self.state = ConnectionState.CONNECTED
        if self.relay is not None:
            self.relay.begin_relaying()
        self.logger.info("Connected to Discord")
        self._set_status(STATUS_CONNECTED)
        return True

    async def _wait_until_ready(self):
        ready = asyncio.ensure_future(self.bot.wait_until_ready())
        done, _ = await asyncio.wait(
            {ready, self._runner},
            timeout=self.connect_timeout,
            return_when=asyncio.FIRST_COMPLETED,
        )
        if ready in done:
            ready.result()
            return
        ready.cancel()
        if self._runner in done:
            # Surfaces the gateway error, if there was one.
            self._runner.result()
            raise ConnectionError("Discord gateway closed before the client was ready")
        raise asyncio.TimeoutError(f"Discord client not ready after {self.connect_timeout} seconds")

    async def _stop_runner(self):
        runner, self._runner = self._runner, None
        if runner is None:
            return
        if not runner.done():
            runner.cancel()
        try:
            await runner
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            self.logger.debug(f"Discord gateway task ended with: {exc}")

    async def disconnect(self):
        try:
            if self.relay is not None:
                self.relay.stop_relaying()
            if self.bot is not None:
                await self.bot.close()
            await self._stop_runner()
            self.state = ConnectionState.DISCONNECTED
        except Exception as exc:
            self.logger.error(f"Disconnecting from discord: {exc}", exc_info=True)
            self.state = ConnectionState.FAILED
            self._set_status(STATUS_FAILED)

    async def dispose(self):
        if self.bot is None:
            return
        await self.disconnect()
        self.bot = None

    async def rebuild(self) -> bool:
        await self.dispose()
        return self._build()

    async def restart(self) -> bool:
        result = await self.rebuild()
        await self.connect()
        return result

    # --- message listeners --------------------------------------------------

    def add_message_listener(self, callback):
        self.bot.add_listener(callback, "on_message")

    def remove_message_listener(self, callback):
        self.bot.remove_listener(callback, "on_message")

    # --- guild access -------------------------------------------------------

    @property
    def guild_names(self) -> List[str]:
        if self.bot is None:
            return []
        return [guild.name for guild in self.bot.guilds]

    @property
    def default_guild(self):
        if self.bot is None or not self.bot.guilds:
            return None
        return self.bot.guilds[0]

    def guild_by_name(self, name: str):
        if self.bot is None:
            return None
        return discord.utils.get(self.bot.guilds, name=name)

    def guild_by_name_or_id(self, name_or_id: str):
        if self.bot is None:
            return None
        if is_snowflake(name_or_id):
            return self.bot.get_guild(int(name_or_id))
        return self.guild_by_name(name_or_id)

    @staticmethod
    def channel_by_name(guild, name: str):
        return discord.utils.get(guild.text_channels, name=name)

    @staticmethod
    def channel_by_name_or_id(guild, name_or_id: str):
        if is_snowflake(name_or_id):
            return guild.get_channel(int(name_or_id))
        return DiscordClient.channel_by_name(guild, name_or_id)

    # --- sending ------------------------------------------------------------

    async def send_message(self, message: str, channel_name_or_id: str, guild_name_or_id: str) -> str:
        if not self.connected:
            return SEND_NO_CLIENT
        guild = self.guild_by_name_or_id(guild_name_or_id)
        if guild is None:
            return SEND_NO_GUILD
        channel = self.channel_by_name_or_id(guild, channel_name_or_id)
        return await self.send_message_to_channel(message, channel)

    async def send_message_to_channel(self, message: str, channel) -> str:
        if not self.connected:
            return SEND_NO_CLIENT
        if not isinstance(channel, discord.abc.Messageable):
            # Categories and forums resolve by id but cannot be sent to.
            return SEND_NO_CHANNEL
        try:
            await channel.send(message)
        except (discord.DiscordException, aiohttp.ClientError) as exc:
            self.logger.error(f"Failed to send message to Discord channel {getattr(channel, 'id', '?')}: {exc}", exc_info=True)
            return SEND_FAILED
        self.logger.debug(f"Sent message to Discord channel {getattr(channel, 'id', '?')}")
        return SEND_OK

    async def send_message_as_user(self, message: str, username: str, channel_name_or_id: str, guild_name_or_id: str) -> str:
        return await self.send_message(format_message_from_username(message, username), channel_name_or_id, guild_name_or_id)

    async def send_message_as_user_to_channel(self, message: str, username: str, channel) -> str:
        return await self.send_message_to_channel(format_message_from_username(message, username), channel)
