# In-process local chat: subscriber registry, identities and the inbound queue
import asyncio
import threading
from collections import OrderedDict
from typing import Callable, Dict, List, Optional

from core.models import ChatMessage, LocalIdentity

DEFAULT_TAG = "#General"
DEFAULT_QUEUE_SIZE = 1000


class SubscriptionHandle:
    """Opaque token returned by subscribe(). Compared by identity only."""

    __slots__ = ("name",)

    def __init__(self, name: str = ""):
        self.name = name

    def __repr__(self):
        return f"<SubscriptionHandle {self.name or hex(id(self))}>"


def split_tag(text: str):
    """Split a leading ``#channel`` word off ``text``.

    Returns ``(tag, body)``; untagged text goes to the default channel.
    """
    if text.startswith("#"):
        tag, _, body = text.partition(" ")
        if len(tag) > 1:
            return tag, body
    return DEFAULT_TAG, text


class LocalChat:
    def __init__(self, logger, max_queue: int = DEFAULT_QUEUE_SIZE):
        self.logger = logger
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=max_queue)
        self._subscribers: "OrderedDict[SubscriptionHandle, Callable]" = OrderedDict()
        self._identities: Dict[str, LocalIdentity] = {}
        self._lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop):
        self._loop = loop

    def subscribe(self, callback: Callable, name: str = "") -> SubscriptionHandle:
        handle = SubscriptionHandle(name or getattr(callback, "__qualname__", ""))
        with self._lock:
            self._subscribers[handle] = callback
        return handle

    def unsubscribe(self, handle: SubscriptionHandle) -> bool:
        with self._lock:
            return self._subscribers.pop(handle, None) is not None

    def subscribers(self) -> List[Callable]:
        with self._lock:
            return list(self._subscribers.values())

    def get_or_create_identity(self, stable_key: str, display_name: str) -> LocalIdentity:
        with self._lock:
            identity = self._identities.get(stable_key)
            if identity is None:
                identity = LocalIdentity(stable_key=stable_key, name=display_name)
                self._identities[stable_key] = identity
            return identity

    def publish(self, message: ChatMessage) -> bool:
        try:
            self.queue.put_nowait(message)
            return True
        except asyncio.QueueFull:
            self.logger.warning(f"Local chat queue full, dropping message from {message.sender} on {message.tag}")
            return False

    def post(self, text: str, as_identity: LocalIdentity) -> bool:
        tag, body = split_tag(text)
        self.logger.debug(f"{as_identity.name} -> {tag}: {body}")
        return self.publish(ChatMessage(text=body, sender=as_identity.name, tag=tag))

    def post_threadsafe(self, text: str, as_identity: LocalIdentity):
        """Queue a post from a thread that is not running the event loop."""
        if self._loop is None:
            raise RuntimeError("Local chat is not bound to an event loop yet")
        self._loop.call_soon_threadsafe(self.post, text, as_identity)
