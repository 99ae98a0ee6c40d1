"""Durable backings for the state store.

Both backings persist the whole state as a single JSON document and
replace it atomically on every write:

- JsonFileBacking: temp file in the same directory, fsync, os.replace
- PostgresBacking: one JSONB row, upserted inside a transaction

``read()`` returns None only when no prior state exists. Any failure to
read or decode existing state raises StoreUnavailable.
"""

import asyncio
import json
import logging
import os
import tempfile
from contextlib import asynccontextmanager
from typing import Optional

import asyncpg

from ..errors import StoreUnavailable

logger = logging.getLogger("anonrelay.db")


# ============================================================
# JSON FILE
# ============================================================

class JsonFileBacking:
    """State document stored in a local JSON file."""

    def __init__(self, path: str):
        self.path = os.path.abspath(os.path.expanduser(path))

    def __repr__(self) -> str:
        return f"JsonFileBacking({self.path!r})"

    async def read(self) -> Optional[dict]:
        return await asyncio.to_thread(self._read_sync)

    async def write(self, document: dict):
        await asyncio.to_thread(self._write_sync, document)

    def _read_sync(self) -> Optional[dict]:
        if not os.path.exists(self.path):
            return None
        try:
            with open(self.path, encoding="utf-8") as f:
                raw = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise StoreUnavailable(f"Cannot read {self.path}: {e}") from e
        # A zero-byte file was never written by us; treat it as fresh
        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreUnavailable(f"Corrupt state file {self.path}: {e}") from e

    def _write_sync(self, document: dict):
        directory = os.path.dirname(self.path)
        tmp_path = None
        try:
            os.makedirs(directory, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=directory,
                prefix=f".{os.path.basename(self.path)}.",
                suffix=".tmp",
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            raise StoreUnavailable(f"Cannot write {self.path}: {e}") from e
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)


# ============================================================
# POSTGRESQL
# ============================================================

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS relay_state (
    id SMALLINT PRIMARY KEY CHECK (id = 1),
    document JSONB NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

UPSERT_DOCUMENT_SQL = """
INSERT INTO relay_state (id, document, updated_at) VALUES (1, $1::jsonb, NOW())
ON CONFLICT (id) DO UPDATE SET document = EXCLUDED.document, updated_at = NOW();
"""

_DB_ERRORS = (OSError, asyncpg.PostgresError, asyncpg.InterfaceError)


class PostgresBacking:
    """State document stored as a single JSONB row.

    The pool is created on first use with the same retry schedule the bot
    uses at boot, so a database container that is still starting does not
    abort startup.
    """

    def __init__(
        self,
        dsn: str,
        min_size: int = 1,
        max_size: int = 4,
        retry_delays: tuple = (2, 4, 8, 8),
    ):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.retry_delays = retry_delays
        self._pool: Optional[asyncpg.Pool] = None

    def __repr__(self) -> str:
        return "PostgresBacking(relay_state)"

    async def connect(self) -> asyncpg.Pool:
        """Create the pool (with retry) and make sure the table exists."""
        if self._pool is not None:
            return self._pool

        max_retries = len(self.retry_delays) + 1
        for attempt in range(max_retries):
            try:
                self._pool = await asyncpg.create_pool(
                    self.dsn, min_size=self.min_size, max_size=self.max_size,
                )
                if attempt > 0:
                    logger.info(f"Database connected after {attempt + 1} attempts")
                break
            except _DB_ERRORS as e:
                if attempt < max_retries - 1:
                    delay = self.retry_delays[attempt]
                    logger.warning(
                        f"Database not ready (attempt {attempt + 1}/{max_retries}): {e}. "
                        f"Retrying in {delay}s..."
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(f"Database connection failed after {max_retries} attempts: {e}")
                    raise StoreUnavailable(f"Database unreachable: {e}") from e

        try:
            async with self._pool.acquire() as conn:
                await conn.execute(CREATE_TABLE_SQL)
        except _DB_ERRORS as e:
            raise StoreUnavailable(f"Cannot prepare relay_state table: {e}") from e
        return self._pool

    async def close(self):
        """Close the connection pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None

    @asynccontextmanager
    async def _transaction(self):
        pool = await self.connect()
        async with pool.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def read(self) -> Optional[dict]:
        try:
            async with self._transaction() as conn:
                raw = await conn.fetchval("SELECT document FROM relay_state WHERE id = 1")
        except _DB_ERRORS as e:
            raise StoreUnavailable(f"Cannot read relay_state: {e}") from e
        if raw is None:
            return None
        if isinstance(raw, str):
            try:
                return json.loads(raw)
            except json.JSONDecodeError as e:
                raise StoreUnavailable(f"Corrupt relay_state document: {e}") from e
        return raw

    async def write(self, document: dict):
        payload = json.dumps(document, ensure_ascii=False)
        try:
            async with self._transaction() as conn:
                await conn.execute(UPSERT_DOCUMENT_SQL, payload)
        except _DB_ERRORS as e:
            raise StoreUnavailable(f"Cannot write relay_state: {e}") from e


def create_backing(settings):
    """Pick the backing configured in settings."""
    if settings.database_url:
        return PostgresBacking(settings.database_url)
    return JsonFileBacking(settings.state_file)
