# Operator-configured routing between Discord channels and local chat channels
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, Optional, Tuple, Union

from core.models import ChannelLink

LinkSnapshot = Tuple[ChannelLink, ...]


@dataclass(frozen=True)
class AddLink:
    link: ChannelLink


@dataclass(frozen=True)
class RemoveLink:
    link: ChannelLink


LinkEdit = Union[AddLink, RemoveLink]


class ChannelLinkRegistry:
    """Copy-on-write set of channel links.

    Readers take the current tuple without locking; edits build a new tuple
    and swap it in under the lock, so a lookup never sees a half-applied edit.
    First match in registration order wins for both lookup directions.
    """

    def __init__(self, links: Iterable[ChannelLink] = (), persist: Optional[Callable[[LinkSnapshot], bool]] = None, logger=None):
        self._links: LinkSnapshot = tuple(links)
        self._persist = persist
        self._lock = threading.Lock()
        self.logger = logger

    @property
    def links(self) -> LinkSnapshot:
        return self._links

    def find_by_remote_channel(self, channel_ref: str) -> Optional[ChannelLink]:
        for link in self._links:
            if link.discord_channel == channel_ref:
                return link
        return None

    def find_by_local_channel(self, channel_name: str) -> Optional[ChannelLink]:
        lowered = channel_name.lower()
        for link in self._links:
            if link.local_channel.lower() == lowered:
                return link
        return None

    def apply(self, edit: LinkEdit) -> Tuple[LinkSnapshot, bool]:
        with self._lock:
            current = self._links
            if isinstance(edit, AddLink):
                updated = current + (edit.link,)
            elif isinstance(edit, RemoveLink):
                if edit.link not in current:
                    return current, False
                index = current.index(edit.link)
                updated = current[:index] + current[index + 1:]
            else:
                raise TypeError(f"Unsupported channel link edit: {edit!r}")
            self._links = updated
        return updated, self._save(updated)

    def replace(self, links: Iterable[ChannelLink]) -> LinkSnapshot:
        with self._lock:
            self._links = tuple(links)
            return self._links

    def _save(self, snapshot: LinkSnapshot) -> bool:
        if self._persist is None:
            return False
        try:
            return bool(self._persist(snapshot))
        except Exception as exc:
            if self.logger:
                self.logger.error(f"Failed to persist channel links: {exc}", exc_info=True)
            return False
