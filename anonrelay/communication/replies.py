"""User-facing reply texts.

Texts marked MARKDOWN are sent with ``FormatHint.MARKDOWN``; keep any
user-controlled content out of them.
"""

# ── Onboarding (MARKDOWN) ──

WELCOME = (
    "Welcome! To join, send your *access code*:\n"
    "• Italian participants: IT code\n"
    "• Chinese participants: CN code\n\n"
    "Then just write normally: your messages will be posted *anonymously* in the channel."
)

ACCESS_CONFIRMED = "✅ Access confirmed. Your alias: *{alias}*.\nWrite the message you want to publish."

SEND_CODE_FIRST = "Please send your *access code* (IT or CN) first."

# ── Relay (PLAIN) ──

CHANNEL_NOT_CONFIGURED = "⚠️ Channel not configured. Wait for the admin to run /bind in the channel."
TOO_LONG = "Message too long (max {limit} characters)."
TEXT_ONLY = "For now only text messages are accepted."
PUBLISHED = "✅ Published anonymously."

# ── Failures (PLAIN) ──

TEMPORARY_ERROR = "Temporary error. Please try again."
ALIAS_SPACE_EXHAUSTED = "No aliases are available right now. Please try again later."

# ── Admin (PLAIN) ──

CHANNEL_BOUND = "✅ Channel bound as relay destination."
BIND_IN_CHANNEL = "Use /bind directly inside the CHANNEL, as admin."
STATS = "👥 Users: {total} (IT: {it}, CN: {cn})"
BAN_USAGE = "Usage: /ban <alias>"
ALIAS_NOT_FOUND = "Alias not found."
BANNED = "🚫 Banned {alias}"
