"""Record types held by the state store."""

import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

ALIAS_RE = re.compile(r"^(IT|CN)-[1-9][0-9]{2}$")


class Role(str, Enum):
    """Participant category, fixed by the access code a user supplied."""

    IT = "IT"
    CN = "CN"

    @classmethod
    def parse(cls, value) -> Optional["Role"]:
        """Return the matching role, or None for anything else."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class UserRecord:
    """One participant.

    ``alias`` and ``role`` are either both set or both unset; once set they
    never change. ``banned`` only ever goes from False to True.
    """

    alias: Optional[str] = None
    role: Optional[Role] = None
    banned: bool = False

    @property
    def onboarded(self) -> bool:
        return bool(self.alias) and self.role is not None

    def with_ban(self) -> "UserRecord":
        return replace(self, banned=True)

    def to_dict(self) -> dict:
        data: dict = {"banned": self.banned}
        if self.onboarded:
            data["alias"] = self.alias
            data["role"] = self.role.value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "UserRecord":
        """Build a record from its persisted form.

        Raises:
            ValueError: if the entry is not a mapping, carries an unknown role,
                has only one of alias/role set, an alias that is not
                ``<ROLE>-<100..999>`` for its own role, or a non-boolean ban flag.
        """
        if not isinstance(data, dict):
            raise ValueError(f"user entry must be an object, got {type(data).__name__}")
        alias = data.get("alias") or None
        raw_role = data.get("role") or None
        role = Role.parse(raw_role) if raw_role is not None else None
        if raw_role is not None and role is None:
            raise ValueError(f"unknown role {raw_role!r}")
        if (alias is None) != (role is None):
            raise ValueError("alias and role must be set together")
        if alias is not None:
            match = ALIAS_RE.fullmatch(alias) if isinstance(alias, str) else None
            if match is None:
                raise ValueError(f"malformed alias {alias!r}")
            if match.group(1) != role.value:
                raise ValueError(f"alias {alias} does not belong to role {role.value}")
        banned = data.get("banned", False)
        if not isinstance(banned, bool):
            raise ValueError(f"banned must be true or false, got {banned!r}")
        return cls(alias=alias, role=role, banned=banned)
