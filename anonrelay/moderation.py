"""Ban flag handling.

Authorization is not checked here; the admin command layer verifies the
sender before calling ``ban``.
"""

import logging

from .errors import AliasNotFound
from .models import UserRecord
from .store import StateStore

logger = logging.getLogger("anonrelay.moderation")


class Moderation:
    def __init__(self, store: StateStore):
        self.store = store

    def is_banned(self, user_id) -> bool:
        record = self.store.get(user_id)
        return bool(record and record.banned)

    async def ban(self, admin_id, alias: str) -> UserRecord:
        """Set the ban flag on the user holding ``alias``.

        Returns:
            The updated record.

        Raises:
            AliasNotFound: no record carries ``alias``; nothing is changed.
        """
        async with self.store.transaction():
            found = self.store.find_by_alias(alias)
            if found is None:
                raise AliasNotFound(alias)
            user_id, record = found
            if record.banned:
                return record
            banned = record.with_ban()
            await self.store.upsert(user_id, banned)

        logger.info(f"Admin {admin_id} banned {alias}")
        return banned
