# Main entrypoint for the DiscordLink bridge
from core.config import ConfigError
from core.message_router import MessageRouter
from services.chat_notifier import ChatNotifier
from services.config_manager import ConfigManager
from services.local_chat import LocalChat
from storage.config_repository import JsonConfigRepository
from transports.discord_client import DiscordClient
import logging
import asyncio
import sys
import os


class BridgeApp:
    def __init__(self, config_path: str, settings=None, local_chat: LocalChat = None, bot_factory=None):
        # Main logger for app-wide events
        self.logger = logging.getLogger("DiscordLink")
        self.discord_logger = self.logger.getChild("Discord")
        self.relay_logger = self.logger.getChild("Relay")
        self.chat_logger = self.logger.getChild("LocalChat")
        self.config_logger = self.logger.getChild("Config")

        self.repository = JsonConfigRepository(config_path, self.config_logger)
        self.config = ConfigManager(self.repository, self.config_logger, settings)
        self.local_chat = local_chat or LocalChat(self.chat_logger)
        self.notifier = ChatNotifier(self.local_chat, self.chat_logger)

        self.discord = DiscordClient(
            lambda: self.config.token,
            self.discord_logger,
            bot_factory=bot_factory,
            connect_timeout=self.config.connect_timeout,
        )
        self.router = MessageRouter(self.config.channel_links, self.discord, self.local_chat, self.relay_logger)
        self.discord.attach_relay(self.router)
        self.config.attach_client(self.discord)
        self.discord.add_status_listener(lambda status: self.discord_logger.info(f"Status: {status}"))

    async def start(self):
        notifier_task = asyncio.create_task(self.notifier.start())
        await self.discord.connect()
        try:
            await notifier_task
        finally:
            await self.discord.dispose()


def configure_logging(debug: bool):
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    # Suppress noisy INFO logs from third-party libraries
    logging.getLogger("discord").setLevel(logging.WARNING)
    logging.getLogger("aiohttp").setLevel(logging.WARNING)


if __name__ == "__main__":
    config_path = os.environ.get("BRIDGE_CONFIG", "config.json")
    try:
        app_config = JsonConfigRepository(config_path).load()
    except ConfigError as exc:
        logging.basicConfig(level=logging.ERROR)
        logging.error(f"Unable to load config: {exc}")
        sys.exit(1)
    configure_logging(app_config.debug)
    if not app_config.channel_links:
        logging.warning("No channel links configured, nothing will be relayed until one is added.")
    app = BridgeApp(config_path, app_config)
    asyncio.run(app.start())
