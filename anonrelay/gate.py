"""Access gate: decides whether a private message is an access code.

Classification is a two-stage, tagged result rather than a control-flow
fallthrough:

1. Shape: only a short token (letters, digits, ``_``, ``-``; at least 4
   characters) can be a code. Free text is never compared.
2. Match: exact, case-sensitive equality against the configured codes.

``NotACode`` is not an error. The dispatcher hands such text to the relay
pipeline, which relays it for onboarded users and prompts the others.
"""

import logging
import re
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from .identity import IdentityManager
from .models import Role

logger = logging.getLogger("anonrelay.gate")

CODE_SHAPE_RE = re.compile(r"^[A-Za-z0-9_-]{4,}$")


@dataclass(frozen=True)
class CodeMatch:
    role: Role


@dataclass(frozen=True)
class NotACode:
    pass


NOT_A_CODE = NotACode()

Classification = Union[CodeMatch, NotACode]


@dataclass(frozen=True)
class GateResult:
    """Outcome of ``AccessGate.validate``.

    For a match, ``role`` and ``alias`` are the user's bound values, which
    may differ from the submitted code's role if the user onboarded earlier.
    """

    matched: bool
    role: Optional[Role] = None
    alias: Optional[str] = None


class AccessGate:
    """Maps access codes to roles and onboards matching users."""

    def __init__(self, role_codes: Mapping[str, Role], identity: IdentityManager):
        self._codes = dict(role_codes)
        self.identity = identity

    def classify(self, text: Optional[str]) -> Classification:
        if not text:
            return NOT_A_CODE
        token = text.strip()
        if not CODE_SHAPE_RE.match(token):
            return NOT_A_CODE
        role = self._codes.get(token)
        if role is None:
            return NOT_A_CODE
        return CodeMatch(role=role)

    async def validate(self, user_id, text: Optional[str]) -> GateResult:
        """Onboard ``user_id`` if ``text`` is a configured code.

        Raises:
            AliasSpaceExhausted: propagated from the identity manager.
        """
        result = self.classify(text)
        if isinstance(result, NotACode):
            return GateResult(matched=False)

        record = await self.identity.resolve_or_create(user_id, result.role)
        if record.role != result.role:
            logger.info(
                f"User {user_id} sent the {result.role.value} code but is bound to "
                f"{record.role.value}; keeping {record.alias}"
            )
        return GateResult(matched=True, role=record.role, alias=record.alias)
