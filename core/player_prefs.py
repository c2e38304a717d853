# Per-player default Discord channel preferences
import threading
from typing import Callable, Iterable, Optional, Tuple

from core.models import PlayerConfig


class PlayerPreferenceStore:
    """Default channel per local player.

    Persistence always runs after the store lock is released; the persist
    callback snapshots the whole config and takes its own locks.
    """

    def __init__(self, configs: Iterable[PlayerConfig] = (), persist: Optional[Callable[[Tuple[PlayerConfig, ...]], bool]] = None, logger=None):
        self._configs = list(configs)
        self._persist = persist
        self._lock = threading.Lock()
        self.logger = logger

    @property
    def configs(self) -> Tuple[PlayerConfig, ...]:
        with self._lock:
            return tuple(self._configs)

    def replace(self, configs: Iterable[PlayerConfig]):
        with self._lock:
            self._configs = list(configs)

    def _find_or_append(self, identity: str) -> Tuple[PlayerConfig, bool]:
        # Caller holds the lock.
        for config in self._configs:
            if config.username == identity:
                return config, False
        config = PlayerConfig(username=identity)
        self._configs.append(config)
        return config, True

    def get_or_create(self, identity: str) -> PlayerConfig:
        with self._lock:
            config, created = self._find_or_append(identity)
        if created:
            self.save()
        return config

    def add_or_replace(self, config: PlayerConfig) -> bool:
        with self._lock:
            replaced = False
            for index, existing in enumerate(self._configs):
                if existing.username == config.username:
                    del self._configs[index]
                    replaced = True
                    break
            self._configs.append(config)
        self.save()
        return replaced

    def set_default_channel(self, identity: str, guild: str, channel: str) -> PlayerConfig:
        with self._lock:
            config, _ = self._find_or_append(identity)
            config.default_channel.guild = guild
            config.default_channel.channel = channel
        self.save()
        return config

    def resolve_default_channel(self, identity: str, guilds):
        """Find the player's default channel through ``guilds`` (a DiscordClient).

        Returns None when no default is set or either lookup misses.
        """
        config = self.get_or_create(identity)
        guild_ref = config.default_channel.guild
        channel_name = config.default_channel.channel
        if not guild_ref or not channel_name:
            return None
        try:
            guild = guilds.guild_by_name_or_id(guild_ref)
            if guild is None:
                return None
            return guilds.channel_by_name(guild, channel_name)
        except Exception as exc:
            if self.logger:
                self.logger.warning(f"Failed to resolve default channel for {identity}: {exc}")
            return None

    def save(self) -> bool:
        if self._persist is None:
            return False
        try:
            return bool(self._persist(self.configs))
        except Exception as exc:
            if self.logger:
                self.logger.error(f"Failed to persist player configs: {exc}", exc_info=True)
            return False
