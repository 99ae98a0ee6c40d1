"""Inbound event dispatcher.

Routes each event to exactly one handler and always reaches a terminal
outcome:

- ``/start`` and ``/help`` in private chats → welcome text
- ``/bind``, ``/stats``, ``/ban`` → admin commands
- other commands → ignored, never relayed
- private messages → access gate; a code match is confirmed, anything
  else goes to the relay pipeline
- non-private, non-command messages → ignored

Events are handled one at a time. Any failure is logged and answered
with a generic retry message; it never stops later events from being
processed.
"""

import asyncio
import logging
from enum import Enum
from typing import Optional

from .admin import AdminCommands
from .communication import replies
from .communication.errors import classify_error
from .errors import RelayError
from .gate import AccessGate
from .relay import RelayOutcome, RelayPipeline
from .transport import FormatHint, InboundEvent, Transport

logger = logging.getLogger("anonrelay.dispatcher")

WELCOME_COMMANDS = frozenset({"start", "help"})


class DispatchOutcome(str, Enum):
    WELCOMED = "welcomed"
    ADMIN = "admin"
    ONBOARDED = "onboarded"
    IGNORED = "ignored"
    FAILED = "failed"


class Dispatcher:
    def __init__(
        self,
        gate: AccessGate,
        relay: RelayPipeline,
        admin: AdminCommands,
        transport: Transport,
    ):
        self.gate = gate
        self.relay = relay
        self.admin = admin
        self.transport = transport
        self._lock = asyncio.Lock()

    async def handle(self, event: InboundEvent):
        """Process one event to completion.

        Returns:
            A DispatchOutcome, or the RelayOutcome when the message went
            through the relay pipeline.
        """
        async with self._lock:
            try:
                return await self._route(event)
            except Exception as e:
                logger.error(
                    f"Error handling event from {event.sender_id} in {event.chat_kind} chat: "
                    f"{type(e).__name__}: {e}",
                    exc_info=not _is_expected(e),
                )
                await self._report_failure(event, e)
                return DispatchOutcome.FAILED

    async def _route(self, event: InboundEvent):
        if event.is_command:
            return await self._route_command(event)

        if not event.is_private or event.sender_id is None:
            return DispatchOutcome.IGNORED

        result = await self.gate.validate(event.sender_id, event.text)
        if result.matched:
            await self.transport.deliver_to_user(
                event.sender_id,
                replies.ACCESS_CONFIRMED.format(alias=result.alias),
                FormatHint.MARKDOWN,
            )
            return DispatchOutcome.ONBOARDED

        return await self.relay.handle(event)

    async def _route_command(self, event: InboundEvent):
        name = event.command_name
        if name in WELCOME_COMMANDS:
            if not event.is_private:
                return DispatchOutcome.IGNORED
            await self.transport.deliver_to_user(event.sender_id, replies.WELCOME, FormatHint.MARKDOWN)
            return DispatchOutcome.WELCOMED

        if await self.admin.handle(event):
            return DispatchOutcome.ADMIN
        return DispatchOutcome.IGNORED

    async def _report_failure(self, event: InboundEvent, error: Exception):
        target: Optional[str] = event.sender_id if event.is_private else None
        if target is None:
            return
        try:
            await self.transport.deliver_to_user(target, classify_error(error))
        except Exception as e:
            logger.warning(f"Could not send error reply to {target}: {type(e).__name__}: {e}")


def _is_expected(e: Exception) -> bool:
    # Domain errors are explained by their message; no traceback needed
    return isinstance(e, RelayError)


__all__ = ["Dispatcher", "DispatchOutcome", "RelayOutcome"]
