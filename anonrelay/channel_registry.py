"""Relay destination binding."""

import logging

from .store import StateStore

logger = logging.getLogger("anonrelay.channel")


class ChannelRegistry:
    """Holds the single relay destination.

    A bound channel always wins over the configured fallback. Rebinding
    overwrites the previous value without confirmation.
    """

    def __init__(self, store: StateStore, default_channel=None):
        self.store = store
        self.default_channel = default_channel

    async def bind(self, channel_id):
        async with self.store.transaction():
            previous = self.store.channel_id
            await self.store.set_channel_id(channel_id)
        if previous is not None and previous != channel_id:
            logger.info(f"Relay channel rebound: {previous} -> {channel_id}")
        else:
            logger.info(f"Relay channel bound: {channel_id}")

    def get(self):
        """Bound channel, else the configured default, else None."""
        return self.store.channel_id or self.default_channel or None
