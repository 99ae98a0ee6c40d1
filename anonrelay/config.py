"""anonrelay configuration management."""

import logging
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from .gate import CODE_SHAPE_RE
from .models import Role


class RelaySettings(BaseSettings):
    """Settings loaded from environment variables or .env file."""

    # Telegram
    bot_token: Optional[str] = Field(default=None, description="Telegram bot token")
    admin_id: Optional[str] = Field(default=None, description="Telegram user ID of the relay admin")

    # Access codes: one per role, compared exactly (case-sensitive)
    access_code_it: Optional[str] = Field(default=None, description="Access code for the IT role")
    access_code_cn: Optional[str] = Field(default=None, description="Access code for the CN role")

    # Relay
    channel_id: Optional[str] = Field(
        default=None,
        description="Fallback relay channel, used until an admin runs /bind",
    )
    max_message_length: int = Field(
        default=2000,
        ge=1,
        description="Longest relayable message, in UTF-16 code units",
    )

    # Persistence
    state_file: str = Field(default="db.json", description="JSON state document path")
    database_url: Optional[str] = Field(
        default=None,
        description="PostgreSQL connection string; when set, replaces the JSON file",
    )

    # Logging
    log_file: Optional[str] = Field(default=None, description="Optional log file path")
    log_level: str = Field(default="INFO", description="Root log level")

    model_config = {"env_prefix": "RELAY_", "env_file": ".env", "extra": "ignore"}

    @model_validator(mode="after")
    def _check_access_codes(self):
        for name in ("access_code_it", "access_code_cn"):
            code = getattr(self, name)
            if code and not CODE_SHAPE_RE.fullmatch(code):
                raise ValueError(
                    f"RELAY_{name.upper()} must be at least 4 letters, digits, '_' or '-' "
                    "with no spaces, otherwise it can never be matched"
                )
        if self.access_code_it and self.access_code_it == self.access_code_cn:
            raise ValueError("RELAY_ACCESS_CODE_IT and RELAY_ACCESS_CODE_CN must differ")
        return self

    def role_codes(self) -> dict[str, Role]:
        """Map each configured access code to its role."""
        codes = {}
        if self.access_code_it:
            codes[self.access_code_it] = Role.IT
        if self.access_code_cn:
            codes[self.access_code_cn] = Role.CN
        return codes


def load_settings() -> RelaySettings:
    """Load settings from environment."""
    settings = RelaySettings()

    logger = logging.getLogger("anonrelay.config")
    db = settings.database_url
    if db and "localhost" not in db and "127.0.0.1" not in db and "db:" not in db:
        logger.warning(
            "Database is not localhost; user ids and aliases are stored there. "
            "Make sure it is not publicly reachable."
        )
    if not settings.admin_id:
        logger.warning("RELAY_ADMIN_ID is not set; /bind, /stats and /ban are disabled.")
    if not settings.role_codes():
        logger.warning("No access codes configured; nobody can onboard.")

    return settings
