"""Communication sub-core: user-facing texts, relay formatting, error messages."""

from .errors import classify_error
from .formatting import format_relay_post, utf16_length

__all__ = [
    "classify_error",
    "format_relay_post",
    "utf16_length",
]
