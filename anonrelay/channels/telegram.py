"""Telegram channel adapter.

Turns python-telegram-bot updates into ``InboundEvent`` objects for the
dispatcher and implements the outbound side of the transport contract.
"""

import logging
from typing import Optional

from telegram import BotCommand, Chat, Update
from telegram.constants import ParseMode
from telegram.error import TelegramError
from telegram.ext import Application, CommandHandler, ContextTypes, MessageHandler, filters

from ..transport import FormatHint, InboundEvent

logger = logging.getLogger("anonrelay.telegram")

COMMANDS = ("start", "help", "bind", "stats", "ban")

# Unsigned channel posts are attributed to the admin for these commands only
CHANNEL_COMMANDS = frozenset({"bind"})

# Commands arrive as private/group messages or as channel posts (/bind)
_COMMAND_UPDATES = filters.UpdateType.MESSAGE | filters.UpdateType.CHANNEL_POST

# New private messages only: edits are not relayed a second time
_PRIVATE_MESSAGES = filters.UpdateType.MESSAGE & filters.ChatType.PRIVATE & ~filters.COMMAND


def parse_command(text: Optional[str]) -> tuple[Optional[str], tuple[str, ...]]:
    """Split ``/name@bot arg1 arg2`` into ``("name", ("arg1", "arg2"))``."""
    if not text or not text.startswith("/"):
        return None, ()
    parts = text.split()
    name = parts[0][1:].split("@", 1)[0].lower()
    return (name or None), tuple(parts[1:])


class TelegramChannel:
    """Telegram bot adapter for the relay."""

    def __init__(self, bot_token: str, admin_id: Optional[str] = None):
        self.bot_token = bot_token
        self.admin_id = admin_id
        self.app: Optional[Application] = None
        self.dispatcher = None
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def set_dispatcher(self, dispatcher):
        self.dispatcher = dispatcher

    async def start(self):
        """Start the Telegram bot."""
        if self.dispatcher is None:
            raise RuntimeError("No dispatcher attached. Call set_dispatcher() first.")

        self.app = (
            Application.builder()
            .token(self.bot_token)
            .build()
        )

        # Command handlers
        for name in COMMANDS:
            self.app.add_handler(CommandHandler(name, self._handle_command, filters=_COMMAND_UPDATES))

        # Message handler: every new private message, text or not
        self.app.add_handler(MessageHandler(_PRIVATE_MESSAGES, self._handle_message))

        # Error handler
        self.app.add_error_handler(self._handle_error)

        logger.info("Starting Telegram bot...")
        await self.app.initialize()
        await self.app.start()
        await self.app.updater.start_polling(
            drop_pending_updates=True,
            allowed_updates=[Update.MESSAGE, Update.CHANNEL_POST],
        )

        # Register bot commands menu (the "/" button in Telegram)
        await self.app.bot.set_my_commands([
            BotCommand("start", "How to join"),
            BotCommand("help", "How to join"),
        ])

        self._running = True
        logger.info("Telegram bot started.")

    async def stop(self):
        """Stop the Telegram bot."""
        self._running = False
        if self.app:
            await self.app.updater.stop()
            await self.app.stop()
            await self.app.shutdown()
            logger.info("Telegram bot stopped.")

    # ── Inbound ─────────────────────────────────────────────

    async def _handle_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        event = await self.build_event(update)
        if event is not None:
            await self.dispatcher.handle(event)

    async def _handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        event = await self.build_event(update)
        if event is not None:
            await self.dispatcher.handle(event)

    async def build_event(self, update: Update) -> Optional[InboundEvent]:
        """Convert an update into an InboundEvent (None if there is no message)."""
        message = update.effective_message
        chat = update.effective_chat
        if message is None or chat is None:
            return None

        text = message.text
        command_name, command_args = parse_command(text)

        user = update.effective_user
        if user is not None:
            sender_id = str(user.id)
        elif chat.type == Chat.CHANNEL and command_name in CHANNEL_COMMANDS:
            sender_id = await self._resolve_channel_sender(chat)
        else:
            sender_id = None

        return InboundEvent(
            sender_id=sender_id,
            chat_id=str(chat.id),
            chat_kind=str(chat.type),
            text=text,
            is_command=command_name is not None,
            command_name=command_name,
            command_args=command_args,
        )

    async def _resolve_channel_sender(self, chat) -> Optional[str]:
        """Attribute an unsigned channel /bind to the admin.

        Channel posts carry no author, and any channel administrator may
        post. The post counts as the admin's when the configured admin is
        one of the channel's administrators, which is enough to bind the
        channel but not to run other admin commands.
        """
        if not self.admin_id:
            return None
        try:
            members = await chat.get_administrators()
        except TelegramError as e:
            logger.warning(f"Could not list administrators of channel {chat.id}: {e}")
            return None
        if any(str(member.user.id) == str(self.admin_id) for member in members):
            return str(self.admin_id)
        return None

    # ── Outbound ────────────────────────────────────────────

    async def deliver_to_user(self, user_id, text: str, format_hint: FormatHint = FormatHint.PLAIN):
        await self._send(user_id, text, format_hint)

    async def deliver_to_channel(self, channel_id, text: str, format_hint: FormatHint = FormatHint.PLAIN):
        await self._send(channel_id, text, format_hint)

    async def _send(self, chat_id, text: str, format_hint: FormatHint):
        if not self.app:
            raise RuntimeError("Telegram bot not started")
        parse_mode = ParseMode.MARKDOWN if format_hint == FormatHint.MARKDOWN else None
        await self.app.bot.send_message(chat_id=chat_id, text=text, parse_mode=parse_mode)

    async def _handle_error(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        """Handle errors."""
        logger.error(f"Telegram error: {context.error}", exc_info=context.error)
