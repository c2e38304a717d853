# Relay logic between local chat and Discord, in both directions
import threading
from typing import Any, Optional

from core.identity import author_nametag, readable_content
from core.models import ChatMessage, RelayStats
from transports.discord_client import COMMAND_PREFIX, SEND_OK

RELAY_IDENTITY_KEY = "DiscordLink"
RELAY_IDENTITY_NAME = "Discord"


class MessageRouter:
    def __init__(self, registry, discord_client, local_chat, logger):
        self.registry = registry
        self.discord_client = discord_client
        self.local_chat = local_chat
        self.logger = logger
        self.stats = RelayStats()
        self._relay_identity = None
        self._relaying = False
        self._local_handle = None
        self._relay_lock = threading.Lock()

    @property
    def relay_identity(self):
        if self._relay_identity is None:
            self._relay_identity = self.local_chat.get_or_create_identity(RELAY_IDENTITY_KEY, RELAY_IDENTITY_NAME)
        return self._relay_identity

    @property
    def relaying(self) -> bool:
        return self._relaying

    def begin_relaying(self):
        with self._relay_lock:
            if self._relaying:
                return
            self._local_handle = self.local_chat.subscribe(self.on_local_message, name="discord-relay")
            self.discord_client.add_message_listener(self.on_remote_message)
            self._relaying = True
        self.logger.info("Relaying started")

    def stop_relaying(self):
        with self._relay_lock:
            if not self._relaying:
                return
            self.local_chat.unsubscribe(self._local_handle)
            self._local_handle = None
            self.discord_client.remove_message_listener(self.on_remote_message)
            self._relaying = False
        self.logger.info("Relaying stopped")

    # --- local -> Discord ---------------------------------------------------

    def log_local_message(self, message: ChatMessage):
        self.logger.debug("Local message processed:")
        self.logger.debug(f"Message: {message.text}")
        self.logger.debug(f"Tag: {message.tag}")
        self.logger.debug(f"Category: {message.category}")
        self.logger.debug(f"Temporary: {message.temporary}")
        self.logger.debug(f"Sender: {message.sender}")

    async def on_local_message(self, message: ChatMessage) -> Optional[str]:
        self.log_local_message(message)
        if message.sender == self.relay_identity.name:
            self.stats.dropped_loop += 1
            self.logger.debug(f"Dropped local message on {message.tag}: relayed from Discord")
            return None
        if not message.sender or not message.sender.strip():
            self.stats.dropped_empty_sender += 1
            self.logger.debug(f"Dropped local message on {message.tag}: no sender")
            return None

        # Tags carry a leading '#'.
        channel_name = message.tag[1:]
        link = self.registry.find_by_local_channel(channel_name)
        channel = link.discord_channel if link else None
        guild = link.discord_guild if link else None
        if not channel or not channel.strip() or not guild or not guild.strip():
            self.stats.dropped_no_link += 1
            self.logger.debug(f"Dropped local message on {message.tag}: no channel link")
            return None

        self.logger.debug(f"Sending local message to Discord channel {channel} in {guild}")
        result = await self.discord_client.send_message_as_user(message.text, message.sender, channel, guild)
        if result == SEND_OK:
            self.stats.forwarded_to_remote += 1
        else:
            self.stats.send_failures += 1
            self.logger.debug(f"Local message from {message.sender} not relayed: {result}")
        return result

    # --- Discord -> local ---------------------------------------------------

    def _is_own_message(self, message: Any) -> bool:
        own_user = self.discord_client.user
        return own_user is not None and message.author.id == own_user.id

    def link_for_discord_channel(self, channel: Any):
        name = getattr(channel, "name", None)
        link = self.registry.find_by_remote_channel(name) if name else None
        return link or self.registry.find_by_remote_channel(str(channel.id))

    async def on_remote_message(self, message: Any):
        channel = message.channel
        self.logger.debug(f"Message received from Discord on channel: {getattr(channel, 'name', channel.id)}")
        if self._is_own_message(message):
            self.stats.dropped_loop += 1
            self.logger.debug(f"Dropped Discord message {message.id}: sent by the bridge")
            return
        if (message.content or "").startswith(COMMAND_PREFIX):
            self.stats.dropped_command += 1
            self.logger.debug(f"Dropped Discord message {message.id}: command")
            return

        link = self.link_for_discord_channel(channel)
        local_channel = link.local_channel if link else None
        if not local_channel or not local_channel.strip():
            self.stats.dropped_no_link += 1
            self.logger.debug(f"Dropped Discord message {message.id}: no channel link")
            return
        await self.forward_to_local_channel(message, local_channel)

    async def forward_to_local_channel(self, message: Any, channel_name: str):
        self.logger.debug(f"Sending message to local channel: {channel_name}")
        tag = await author_nametag(message)
        text = f"#{channel_name} {tag}: {readable_content(message)}"
        if self.local_chat.post(text, self.relay_identity):
            self.stats.forwarded_to_local += 1
