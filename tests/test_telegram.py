"""Tests for the Telegram adapter: update parsing and outbound formatting."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from telegram.constants import ParseMode
from telegram.error import Forbidden

from anonrelay.channels.telegram import TelegramChannel, parse_command
from anonrelay.dispatcher import DispatchOutcome
from anonrelay.models import Role, UserRecord
from anonrelay.transport import CHANNEL, PRIVATE, FormatHint

from fakes import ADMIN_ID


def _update(text, chat_type="private", chat_id=111, user_id=111):
    update = MagicMock()
    update.effective_message.text = text
    update.effective_chat.type = chat_type
    update.effective_chat.id = chat_id
    if user_id is None:
        update.effective_user = None
    else:
        update.effective_user.id = user_id
    return update


def _admins(*ids):
    return [MagicMock(user=MagicMock(id=i)) for i in ids]


class TestParseCommand:
    """Test splitting of command text."""

    def test_plain_command(self):
        assert parse_command("/stats") == ("stats", ())

    def test_arguments(self):
        assert parse_command("/ban IT-407") == ("ban", ("IT-407",))

    def test_bot_suffix_stripped(self):
        assert parse_command("/bind@AnonRelayBot") == ("bind", ())

    def test_name_lowercased(self):
        assert parse_command("/STATS") == ("stats", ())

    def test_not_a_command(self):
        assert parse_command("hello /ban") == (None, ())
        assert parse_command("") == (None, ())
        assert parse_command(None) == (None, ())

    def test_bare_slash(self):
        assert parse_command("/") == (None, ())


class TestBuildEvent:
    """Test conversion of updates into inbound events."""

    @pytest.mark.asyncio
    async def test_private_text(self):
        channel = TelegramChannel("token", admin_id=ADMIN_ID)
        event = await channel.build_event(_update("hello"))

        assert event.sender_id == "111"
        assert event.chat_id == "111"
        assert event.chat_kind == PRIVATE
        assert event.is_private
        assert event.text == "hello"
        assert not event.is_command

    @pytest.mark.asyncio
    async def test_private_command(self):
        channel = TelegramChannel("token", admin_id=ADMIN_ID)
        event = await channel.build_event(_update("/ban CN-321", user_id=999, chat_id=999))

        assert event.is_command
        assert event.command_name == "ban"
        assert event.command_args == ("CN-321",)

    @pytest.mark.asyncio
    async def test_media_has_no_text(self):
        channel = TelegramChannel("token")
        event = await channel.build_event(_update(None))
        assert event.text is None
        assert not event.is_command

    @pytest.mark.asyncio
    async def test_no_message(self):
        update = _update("x")
        update.effective_message = None
        assert await TelegramChannel("token").build_event(update) is None

    @pytest.mark.asyncio
    async def test_channel_post_attributed_to_admin(self):
        update = _update("/bind", chat_type="channel", chat_id=-100500, user_id=None)
        update.effective_chat.get_administrators = AsyncMock(return_value=_admins(5, 999))

        event = await TelegramChannel("token", admin_id=ADMIN_ID).build_event(update)

        assert event.sender_id == ADMIN_ID
        assert event.chat_id == "-100500"
        assert event.chat_kind == CHANNEL
        assert event.command_name == "bind"

    @pytest.mark.asyncio
    async def test_channel_post_without_admin_has_no_sender(self):
        update = _update("/bind", chat_type="channel", chat_id=-100500, user_id=None)
        update.effective_chat.get_administrators = AsyncMock(return_value=_admins(5, 6))

        event = await TelegramChannel("token", admin_id=ADMIN_ID).build_event(update)
        assert event.sender_id is None

    @pytest.mark.asyncio
    async def test_channel_admin_lookup_failure(self):
        update = _update("/bind", chat_type="channel", chat_id=-100500, user_id=None)
        update.effective_chat.get_administrators = AsyncMock(side_effect=Forbidden("not a member"))

        event = await TelegramChannel("token", admin_id=ADMIN_ID).build_event(update)
        assert event.sender_id is None

    @pytest.mark.asyncio
    async def test_channel_post_without_configured_admin(self):
        update = _update("/bind", chat_type="channel", chat_id=-100500, user_id=None)
        update.effective_chat.get_administrators = AsyncMock(return_value=_admins(999))

        event = await TelegramChannel("token").build_event(update)

        assert event.sender_id is None
        update.effective_chat.get_administrators.assert_not_called()

    @pytest.mark.asyncio
    async def test_unsigned_channel_ban_not_attributed(self):
        update = _update("/ban IT-407", chat_type="channel", chat_id=-100500, user_id=None)
        update.effective_chat.get_administrators = AsyncMock(return_value=_admins(5, 999))

        event = await TelegramChannel("token", admin_id=ADMIN_ID).build_event(update)

        assert event.command_name == "ban"
        assert event.sender_id is None
        update.effective_chat.get_administrators.assert_not_called()

    @pytest.mark.asyncio
    async def test_co_admin_channel_commands_are_ignored(self, app, transport):
        """Another channel administrator cannot ban or read stats as the admin."""
        await app.store.upsert("42", UserRecord(alias="IT-407", role=Role.IT))
        channel = TelegramChannel("token", admin_id=ADMIN_ID)

        for text in ("/ban IT-407", "/stats"):
            update = _update(text, chat_type="channel", chat_id=-100500, user_id=None)
            update.effective_chat.get_administrators = AsyncMock(return_value=_admins(5, 999))
            event = await channel.build_event(update)

            assert await app.dispatcher.handle(event) == DispatchOutcome.IGNORED

        assert app.moderation.is_banned("42") is False
        assert transport.channel_messages == []
        assert transport.user_messages == []


class TestOutbound:
    """Test that format hints map onto Telegram parse modes."""

    def _channel(self):
        channel = TelegramChannel("token")
        channel.app = MagicMock()
        channel.app.bot.send_message = AsyncMock()
        return channel

    @pytest.mark.asyncio
    async def test_plain_has_no_parse_mode(self):
        channel = self._channel()
        await channel.deliver_to_channel("-100500", "IT-407:\n*not bold*")

        channel.app.bot.send_message.assert_awaited_once_with(
            chat_id="-100500", text="IT-407:\n*not bold*", parse_mode=None,
        )

    @pytest.mark.asyncio
    async def test_markdown(self):
        channel = self._channel()
        await channel.deliver_to_user("111", "*hi*", FormatHint.MARKDOWN)

        channel.app.bot.send_message.assert_awaited_once_with(
            chat_id="111", text="*hi*", parse_mode=ParseMode.MARKDOWN,
        )

    @pytest.mark.asyncio
    async def test_send_errors_propagate(self):
        channel = self._channel()
        channel.app.bot.send_message.side_effect = Forbidden("bot was blocked by the user")

        with pytest.raises(Forbidden):
            await channel.deliver_to_user("111", "hi")

    @pytest.mark.asyncio
    async def test_not_started(self):
        with pytest.raises(RuntimeError):
            await TelegramChannel("token").deliver_to_user("111", "hi")

    @pytest.mark.asyncio
    async def test_start_requires_dispatcher(self):
        with pytest.raises(RuntimeError, match="dispatcher"):
            await TelegramChannel("token").start()
