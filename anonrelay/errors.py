"""Domain exceptions for the identity and relay core."""


class RelayError(Exception):
    """Base class for anonrelay errors."""


class StoreUnavailable(RelayError):
    """Durable state exists but cannot be read, parsed or written."""


class AliasSpaceExhausted(RelayError):
    """Every alias number for a role is already assigned."""

    def __init__(self, role: str):
        super().__init__(f"No free aliases left for role {role}")
        self.role = role


class AliasNotFound(RelayError):
    """No user record carries the requested alias."""

    def __init__(self, alias: str):
        super().__init__(f"Alias not found: {alias}")
        self.alias = alias
