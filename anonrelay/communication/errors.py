"""Error classification for user-facing messages."""

import asyncio

from telegram.error import BadRequest, Forbidden, NetworkError, RetryAfter, TimedOut

from ..errors import AliasSpaceExhausted, StoreUnavailable
from . import replies


def classify_error(e: Exception) -> str:
    """Classify any exception raised while handling an event.

    Returns a short string suitable for sending directly to the user. The
    text never reveals ban status, aliases or configuration.
    """
    # 1: Domain errors the user can act on
    if isinstance(e, AliasSpaceExhausted):
        return replies.ALIAS_SPACE_EXHAUSTED
    if isinstance(e, StoreUnavailable):
        return "Storage is temporarily unavailable. Please try again."

    # 2-3: Telegram flood control and timeouts
    if isinstance(e, RetryAfter):
        return "Too many messages right now. Please wait a moment and try again."
    if isinstance(e, (TimedOut, asyncio.TimeoutError)):
        return "Request timed out. Please try again."

    # 4: Destination refused the post (bot removed from channel, etc.)
    if isinstance(e, Forbidden):
        return "The channel is not reachable right now. Please try again later."

    # 5: BadRequest subclasses NetworkError, so it goes first
    if isinstance(e, BadRequest):
        return "The message could not be delivered. Please try again."
    if isinstance(e, NetworkError):
        return replies.TEMPORARY_ERROR

    # 6: Fallback
    return replies.TEMPORARY_ERROR
