"""End-to-end wiring test through BridgeApp with a fake Discord bot."""

import asyncio

import pytest

from core.models import BridgeSettings, ChannelLink
from main import BridgeApp
from storage.config_repository import JsonConfigRepository


@pytest.mark.asyncio
async def test_local_post_reaches_discord_through_notifier(tmp_path, logger, bot_factory, general_channel):
    path = str(tmp_path / "config.json")
    JsonConfigRepository(path, logger).save(
        BridgeSettings(token="good-token", channel_links=[ChannelLink("G", "general", "Global")])
    )
    app = BridgeApp(path, bot_factory=bot_factory)
    assert await app.discord.connect() is True

    task = asyncio.create_task(app.notifier.start())
    bob = app.local_chat.get_or_create_identity("bob", "Bob")
    app.local_chat.post("#Global hello <b>world</b>", bob)
    app.local_chat.post("#Trade not linked", bob)
    await asyncio.wait_for(app.local_chat.queue.join(), timeout=1)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert general_channel.sent == ["**Bob**: hello world"]
    assert app.router.stats.forwarded_to_remote == 1
    assert app.router.stats.dropped_no_link == 1
    await app.discord.dispose()
    assert app.router.relaying is False
