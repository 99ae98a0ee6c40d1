"""anonrelay — anonymous Telegram relay with access-code onboarding."""

__version__ = "0.3.0"
