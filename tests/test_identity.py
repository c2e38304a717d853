"""Tests for tag stripping and Discord mention translation."""

from types import SimpleNamespace

import pytest

from conftest import FakeChannel, FakeGuild, make_member, make_remote_message
from core.identity import (
    author_nametag,
    format_message_from_username,
    nametag,
    readable_content,
    strip_tags,
)


def test_strip_tags_removes_markup():
    assert strip_tags("<b>hi</b> there") == "hi there"


@pytest.mark.parametrize("text", ["<b>hi</b> there", "a < b > c", "<<b>>x", "plain", ""])
def test_strip_tags_is_idempotent(text):
    assert strip_tags(strip_tags(text)) == strip_tags(text)


def test_format_message_bolds_sender_and_strips_body():
    assert format_message_from_username("<color=red>hi</color>", "Bob") == "**Bob**: hi"


def test_nametag_uses_accent_color():
    assert nametag("Alice") == "<b><color=#7289DAFF>Alice</color></b>"


def test_user_mention_resolves_to_display_name(guild, general_channel):
    author = make_member(7, "Carol")
    message = make_remote_message("hello <@123>", general_channel, author, mentions=[SimpleNamespace(id=123)])
    assert readable_content(message) == "hello @Alice"


def test_nickname_mention_form_is_rewritten(guild, general_channel):
    author = make_member(7, "Carol")
    message = make_remote_message("hey <@!123>", general_channel, author, mentions=[SimpleNamespace(id=123)])
    assert readable_content(message) == "hey @Alice"


def test_unresolved_user_mention_left_raw(general_channel):
    FakeGuild(1, "Empty", channels=[general_channel])
    author = make_member(7, "Carol")
    message = make_remote_message("hello <@123>", general_channel, author, mentions=[SimpleNamespace(id=123)])
    assert readable_content(message) == "hello <@123>"


def test_role_and_channel_mentions_rewritten(guild, general_channel):
    author = make_member(7, "Carol")
    role = SimpleNamespace(id=77, name="Mods")
    trade = SimpleNamespace(id=556, name="trade")
    message = make_remote_message(
        "<@&77> see <#556>",
        general_channel,
        author,
        role_mentions=[role, None],
        channel_mentions=[trade],
    )
    assert readable_content(message) == "@Mods see #trade"


@pytest.mark.asyncio
async def test_author_nametag_uses_member_display_name(guild, general_channel):
    author = SimpleNamespace(id=123, name="alice_base")
    message = make_remote_message("hi", general_channel, author)
    assert await author_nametag(message) == nametag("Alice")


@pytest.mark.asyncio
async def test_author_nametag_falls_back_to_username_when_member_missing(guild, general_channel):
    author = SimpleNamespace(id=404, name="ghost")
    message = make_remote_message("hi", general_channel, author)
    assert await author_nametag(message) == "ghost"
    assert guild.fetch_calls == 1


@pytest.mark.asyncio
async def test_author_nametag_without_guild_uses_username():
    channel = FakeChannel(1, "dm")
    author = SimpleNamespace(id=5, name="dave")
    message = make_remote_message("hi", channel, author)
    assert await author_nametag(message) == "dave"
