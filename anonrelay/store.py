"""State store: single in-process authority over user records and config.

All reads go through the store, all mutations are read-modify-write-flush
sequences. Components that need a consistent view across several reads
and a write (alias issuance, ban) hold ``transaction()`` for the whole
sequence; ``upsert`` and ``set_channel_id`` flush before returning.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Iterator, Optional

from .errors import StoreUnavailable
from .models import UserRecord

logger = logging.getLogger("anonrelay.store")


def _key(user_id) -> str:
    # JSON object keys are strings; normalize ints coming from the transport
    return str(user_id)


class StateStore:
    """Durable mapping of user records plus the config singleton."""

    def __init__(self, backing):
        self.backing = backing
        self._users: dict[str, UserRecord] = {}
        self._config: dict[str, Any] = {}
        self._loaded = False
        self._lock = asyncio.Lock()
        self._flush_lock = asyncio.Lock()

    @property
    def loaded(self) -> bool:
        return self._loaded

    # ── Lifecycle ───────────────────────────────────────────

    async def load(self):
        """Populate memory from the backing.

        Raises:
            StoreUnavailable: existing state could not be read or is malformed.
        """
        document = await self.backing.read()
        if document is None:
            logger.info(f"No prior state in {self.backing!r}; starting empty")
            self._users, self._config = {}, {}
            self._loaded = True
            return

        users, config = self._parse(document)
        self._users, self._config = users, config
        self._loaded = True
        logger.info(f"Loaded {len(users)} user(s) from {self.backing!r}")

    @staticmethod
    def _parse(document) -> tuple[dict[str, UserRecord], dict[str, Any]]:
        if not isinstance(document, dict):
            raise StoreUnavailable("State document must be a JSON object")
        raw_users = document.get("users", {})
        raw_config = document.get("config", {})
        if not isinstance(raw_users, dict) or not isinstance(raw_config, dict):
            raise StoreUnavailable("State document has malformed 'users' or 'config'")

        users = {}
        owners: dict[str, str] = {}
        for user_id, entry in raw_users.items():
            try:
                record = UserRecord.from_dict(entry)
            except ValueError as e:
                raise StoreUnavailable(f"Malformed record for user {user_id}: {e}") from e
            if record.alias is not None:
                if record.alias in owners:
                    raise StoreUnavailable(
                        f"Alias {record.alias} is held by both user {owners[record.alias]} and user {user_id}"
                    )
                owners[record.alias] = user_id
            users[_key(user_id)] = record
        return users, dict(raw_config)

    def snapshot(self) -> dict:
        """Full persisted form of the current state."""
        return {
            "users": {uid: record.to_dict() for uid, record in self._users.items()},
            "config": dict(self._config),
        }

    async def flush(self):
        """Write the whole document. Safe to call repeatedly."""
        async with self._flush_lock:
            await self.backing.write(self.snapshot())

    @asynccontextmanager
    async def transaction(self):
        """Hold the store lock for a read-modify-write sequence."""
        async with self._lock:
            yield self

    # ── Users ───────────────────────────────────────────────

    def get(self, user_id) -> Optional[UserRecord]:
        return self._users.get(_key(user_id))

    def records(self) -> Iterator[tuple[str, UserRecord]]:
        return iter(list(self._users.items()))

    def find_by_alias(self, alias: str) -> Optional[tuple[str, UserRecord]]:
        for user_id, record in self._users.items():
            if record.alias == alias:
                return user_id, record
        return None

    def assigned_aliases(self) -> set[str]:
        return {record.alias for record in self._users.values() if record.alias}

    async def upsert(self, user_id, record: UserRecord):
        """Replace a record and flush.

        If the flush fails the previous in-memory record is restored and the
        error propagates; the caller must not report success.
        """
        key = _key(user_id)
        previous = self._users.get(key)
        self._users[key] = record
        try:
            await self.flush()
        except Exception:
            if previous is None:
                self._users.pop(key, None)
            else:
                self._users[key] = previous
            raise

    # ── Config singleton ────────────────────────────────────

    @property
    def channel_id(self):
        return self._config.get("channelId")

    async def set_channel_id(self, channel_id):
        previous = self._config.get("channelId")
        self._config["channelId"] = channel_id
        try:
            await self.flush()
        except Exception:
            if previous is None:
                self._config.pop("channelId", None)
            else:
                self._config["channelId"] = previous
            raise
