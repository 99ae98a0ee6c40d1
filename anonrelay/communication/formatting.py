"""Relay post formatting."""


def utf16_length(text: str) -> int:
    """Length in UTF-16 code units, the unit Telegram counts message size in.

    Characters outside the BMP (most emoji) count as two.
    """
    return len(text.encode("utf-16-le")) // 2


def format_relay_post(alias: str, text: str) -> str:
    """Build the channel payload: alias line, newline, trimmed message.

    >>> format_relay_post("IT-407", "  hello ")
    'IT-407:\\nhello'
    """
    return f"{alias}:\n{text.strip()}"
