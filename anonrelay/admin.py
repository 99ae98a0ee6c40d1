"""Admin commands: /bind, /stats, /ban.

Only the configured admin may run them. For anyone else every admin
command is a silent no-op, so non-admins learn nothing about which
commands exist.
"""

import logging
from typing import Optional

from .channel_registry import ChannelRegistry
from .communication import replies
from .errors import AliasNotFound
from .models import Role
from .moderation import Moderation
from .store import StateStore
from .transport import CHANNEL, InboundEvent, Transport

logger = logging.getLogger("anonrelay.admin")

ADMIN_COMMANDS = frozenset({"bind", "stats", "ban"})

# Channel posts are only trusted for binding; other replies would be public
CHANNEL_ADMIN_COMMANDS = frozenset({"bind"})


def is_admin(sender_id, admin_id: Optional[str]) -> bool:
    """Identity-equality check against the configured admin."""
    if sender_id is None or not admin_id:
        return False
    return str(sender_id) == str(admin_id)


class AdminCommands:
    def __init__(
        self,
        admin_id: Optional[str],
        store: StateStore,
        channels: ChannelRegistry,
        moderation: Moderation,
        transport: Transport,
    ):
        self.admin_id = admin_id
        self.store = store
        self.channels = channels
        self.moderation = moderation
        self.transport = transport

    async def handle(self, event: InboundEvent) -> bool:
        """Run an admin command.

        Returns:
            True if the command ran, False if it was ignored (unknown
            command or unauthorized sender).
        """
        if event.command_name not in ADMIN_COMMANDS:
            return False
        if not is_admin(event.sender_id, self.admin_id):
            logger.debug(f"Ignoring /{event.command_name} from non-admin {event.sender_id}")
            return False
        if event.chat_kind == CHANNEL and event.command_name not in CHANNEL_ADMIN_COMMANDS:
            logger.debug(f"Ignoring /{event.command_name} posted in channel {event.chat_id}")
            return False

        if event.command_name == "bind":
            await self._bind(event)
        elif event.command_name == "stats":
            await self._stats(event)
        else:
            await self._ban(event)
        return True

    async def _reply(self, event: InboundEvent, text: str):
        if event.chat_kind == CHANNEL:
            await self.transport.deliver_to_channel(event.chat_id, text)
        else:
            await self.transport.deliver_to_user(event.chat_id or event.sender_id, text)

    async def _bind(self, event: InboundEvent):
        if event.chat_kind != CHANNEL:
            await self._reply(event, replies.BIND_IN_CHANNEL)
            return
        await self.channels.bind(event.chat_id)
        await self._reply(event, replies.CHANNEL_BOUND)

    async def _stats(self, event: InboundEvent):
        total = it = cn = 0
        for _, record in self.store.records():
            total += 1
            if record.role == Role.IT:
                it += 1
            elif record.role == Role.CN:
                cn += 1
        await self._reply(event, replies.STATS.format(total=total, it=it, cn=cn))

    async def _ban(self, event: InboundEvent):
        if not event.command_args:
            await self._reply(event, replies.BAN_USAGE)
            return
        alias = event.command_args[0]
        try:
            record = await self.moderation.ban(event.sender_id, alias)
        except AliasNotFound:
            logger.info(f"Ban requested for unknown alias {alias}")
            await self._reply(event, replies.ALIAS_NOT_FOUND)
            return
        await self._reply(event, replies.BANNED.format(alias=record.alias))
