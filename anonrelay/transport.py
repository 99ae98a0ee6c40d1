"""Contract between the relay core and a message transport."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Protocol

PRIVATE = "private"
CHANNEL = "channel"


class FormatHint(str, Enum):
    """Markup the transport may honor. The core never relies on rendering."""

    PLAIN = "plain"
    MARKDOWN = "markdown"


@dataclass(frozen=True)
class InboundEvent:
    """One message or command received by the transport.

    ``sender_id`` is None when the transport cannot attribute the message
    to a user (e.g. an unsigned channel post).
    """

    sender_id: Optional[str]
    chat_id: Optional[str]
    chat_kind: str
    text: Optional[str] = None
    is_command: bool = False
    command_name: Optional[str] = None
    command_args: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_private(self) -> bool:
        return self.chat_kind == PRIVATE


class Transport(Protocol):
    async def deliver_to_user(self, user_id, text: str, format_hint: FormatHint = FormatHint.PLAIN):
        ...

    async def deliver_to_channel(self, channel_id, text: str, format_hint: FormatHint = FormatHint.PLAIN):
        ...
