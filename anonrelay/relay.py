"""Relay pipeline: decides whether a private message reaches the channel.

Checks run in a fixed order and the first that applies is terminal:

1. no bound channel    → tell the user to wait for /bind (message dropped)
2. sender banned       → silent drop, no reply
3. text too long       → "too long"
4. no text (media)     → "text only"
5. not onboarded       → ask for an access code
6. otherwise           → post ``"<alias>:\\n<text>"`` and confirm

An unbound channel wins over everything else because nothing can be
relayed regardless of who is asking. Bans are silent so a banned user
cannot tell they were banned.
"""

import logging
from enum import Enum

from .channel_registry import ChannelRegistry
from .communication import replies
from .communication.formatting import format_relay_post, utf16_length
from .moderation import Moderation
from .store import StateStore
from .transport import FormatHint, InboundEvent, Transport

logger = logging.getLogger("anonrelay.relay")

DEFAULT_MAX_LENGTH = 2000


class RelayOutcome(str, Enum):
    CHANNEL_UNBOUND = "channel_unbound"
    BANNED = "banned"
    TOO_LONG = "too_long"
    NOT_TEXT = "not_text"
    NOT_ONBOARDED = "not_onboarded"
    RELAYED = "relayed"


class RelayPipeline:
    def __init__(
        self,
        store: StateStore,
        channels: ChannelRegistry,
        moderation: Moderation,
        transport: Transport,
        max_length: int = DEFAULT_MAX_LENGTH,
    ):
        self.store = store
        self.channels = channels
        self.moderation = moderation
        self.transport = transport
        self.max_length = max_length

    async def handle(self, event: InboundEvent) -> RelayOutcome:
        """Run one private message through the checks.

        Transport errors propagate; the dispatcher turns them into a retry
        reply.
        """
        user_id = event.sender_id
        text = event.text

        channel_id = self.channels.get()
        if not channel_id:
            await self.transport.deliver_to_user(user_id, replies.CHANNEL_NOT_CONFIGURED)
            return RelayOutcome.CHANNEL_UNBOUND

        if self.moderation.is_banned(user_id):
            logger.debug(f"Dropping message from banned user {user_id}")
            return RelayOutcome.BANNED

        if text and utf16_length(text) > self.max_length:
            await self.transport.deliver_to_user(
                user_id, replies.TOO_LONG.format(limit=self.max_length),
            )
            return RelayOutcome.TOO_LONG

        if not text:
            await self.transport.deliver_to_user(user_id, replies.TEXT_ONLY)
            return RelayOutcome.NOT_TEXT

        record = self.store.get(user_id)
        if record is None or not record.onboarded:
            await self.transport.deliver_to_user(
                user_id, replies.SEND_CODE_FIRST, FormatHint.MARKDOWN,
            )
            return RelayOutcome.NOT_ONBOARDED

        payload = format_relay_post(record.alias, text)
        await self.transport.deliver_to_channel(channel_id, payload, FormatHint.PLAIN)
        logger.info(f"Relayed message from {record.alias} to channel {channel_id}")

        await self.transport.deliver_to_user(user_id, replies.PUBLISHED)
        return RelayOutcome.RELAYED
