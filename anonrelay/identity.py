"""Alias issuance and role binding.

Aliases look like ``IT-407``: the role followed by a number in
[100, 999], unique across every record regardless of role. A user's
alias and role are assigned once and never change.
"""

import logging
import random
from typing import Optional

from .errors import AliasSpaceExhausted
from .models import Role, UserRecord
from .store import StateStore

logger = logging.getLogger("anonrelay.identity")

ALIAS_MIN = 100
ALIAS_MAX = 999
DEFAULT_ROLE = Role.IT

# Random draws before switching to an exact scan of the free numbers
RANDOM_DRAWS = 16


def format_alias(role: Role, number: int) -> str:
    return f"{role.value}-{number}"


class IdentityManager:
    """Issues aliases and binds roles, persisting through the store."""

    def __init__(self, store: StateStore, rng: Optional[random.Random] = None):
        self.store = store
        self._rng = rng or random.SystemRandom()

    async def resolve_or_create(self, user_id, role_hint=None) -> UserRecord:
        """Return the user's record, issuing an alias on first call.

        Args:
            user_id: Transport-level user identifier
            role_hint: Role to bind if the user has none yet; anything that
                is not a valid role falls back to IT. Ignored once a role
                is bound.

        Returns:
            The onboarded UserRecord (alias and role set).

        Raises:
            AliasSpaceExhausted: all 900 numbers for the role are taken.
        """
        async with self.store.transaction():
            existing = self.store.get(user_id)
            if existing and existing.onboarded:
                return existing

            role = Role.parse(role_hint) or DEFAULT_ROLE
            alias = self._pick_alias(role, self.store.assigned_aliases())
            record = UserRecord(
                alias=alias,
                role=role,
                banned=existing.banned if existing else False,
            )
            await self.store.upsert(user_id, record)

        logger.info(f"Issued alias {alias} to user {user_id}")
        return record

    def _pick_alias(self, role: Role, taken: set[str]) -> str:
        for _ in range(RANDOM_DRAWS):
            candidate = format_alias(role, self._rng.randint(ALIAS_MIN, ALIAS_MAX))
            if candidate not in taken:
                return candidate

        free = [
            n for n in range(ALIAS_MIN, ALIAS_MAX + 1)
            if format_alias(role, n) not in taken
        ]
        if not free:
            logger.warning(f"Alias space exhausted for role {role.value}")
            raise AliasSpaceExhausted(role.value)
        return format_alias(role, self._rng.choice(free))
