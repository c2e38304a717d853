import asyncio
import threading
from typing import Optional, Tuple

from core.channel_links import AddLink, ChannelLinkRegistry, LinkSnapshot, RemoveLink
from core.models import BridgeSettings, ChannelLink
from core.player_prefs import PlayerPreferenceStore


class ConfigManager:
    """Owns the live settings, the channel link registry and player preferences.

    Link and player edits persist immediately. ``save()`` additionally rebuilds
    and reconnects the Discord client when the stored token no longer matches
    the one the client was built with.
    """

    def __init__(self, repository, logger, settings: Optional[BridgeSettings] = None):
        self.repository = repository
        self.logger = logger
        if settings is None:
            settings = repository.load()
        self._token = settings.token
        self.debug = settings.debug
        self.connect_timeout = settings.connect_timeout
        self.channel_links = ChannelLinkRegistry(settings.channel_links, persist=self._persist_links, logger=logger)
        self.player_prefs = PlayerPreferenceStore(settings.player_configs, persist=self._persist_players, logger=logger)
        self.discord_client = None
        self._save_lock = threading.Lock()
        self._restart_lock = asyncio.Lock()

    @property
    def token(self) -> str:
        return self._token

    def attach_client(self, discord_client):
        self.discord_client = discord_client

    def snapshot(self) -> BridgeSettings:
        return BridgeSettings(
            token=self._token,
            channel_links=list(self.channel_links.links),
            player_configs=list(self.player_prefs.configs),
            debug=self.debug,
            connect_timeout=self.connect_timeout,
        )

    def persist(self) -> bool:
        with self._save_lock:
            self.logger.debug("Saving config")
            return self.repository.save(self.snapshot())

    def _persist_links(self, links: LinkSnapshot) -> bool:
        return self.persist()

    def _persist_players(self, configs) -> bool:
        return self.persist()

    def add_channel_link(self, discord_guild: str, discord_channel: str, local_channel: str) -> Tuple[LinkSnapshot, bool]:
        link = ChannelLink(discord_guild=discord_guild, discord_channel=discord_channel, local_channel=local_channel)
        return self.channel_links.apply(AddLink(link))

    def remove_channel_link(self, link: ChannelLink) -> Tuple[LinkSnapshot, bool]:
        return self.channel_links.apply(RemoveLink(link))

    async def set_token(self, token: str) -> bool:
        self._token = token
        return await self.save()

    async def save(self) -> bool:
        saved = self.persist()
        await self._restart_if_token_changed()
        return saved

    async def reload(self):
        settings = self.repository.load()
        self._token = settings.token
        self.debug = settings.debug
        self.connect_timeout = settings.connect_timeout
        self.channel_links.replace(settings.channel_links)
        self.player_prefs.replace(settings.player_configs)
        self.logger.info(f"Reloaded config: {len(settings.channel_links)} channel links")
        await self._restart_if_token_changed()

    async def _restart_if_token_changed(self):
        async with self._restart_lock:
            client = self.discord_client
            if client is None or client.current_token == self._token:
                return
            self.logger.info("Discord token changed, reinitialising client")
            client.connect_timeout = self.connect_timeout
            await client.restart()
