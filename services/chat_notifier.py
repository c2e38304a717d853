import asyncio
import inspect


class ChatNotifier:
    """Single worker that drains the local chat queue in FIFO order."""

    def __init__(self, local_chat, logger):
        self.local_chat = local_chat
        self.logger = logger
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def start(self):
        self.local_chat.bind_loop(asyncio.get_running_loop())
        self._running = True
        self.logger.info("Chat notifier started")
        while self._running:
            try:
                message = await self.local_chat.queue.get()
                try:
                    await self.dispatch(message)
                finally:
                    self.local_chat.queue.task_done()
            except asyncio.CancelledError:
                self.logger.info("Chat notifier cancelled")
                self._running = False
                raise

    async def dispatch(self, message):
        for callback in self.local_chat.subscribers():
            try:
                result = callback(message)
                if inspect.isawaitable(result):
                    await result
            except Exception as exc:
                self.logger.error(f"Chat subscriber failed on message from {message.sender}: {exc}", exc_info=True)

    def stop(self):
        self._running = False
