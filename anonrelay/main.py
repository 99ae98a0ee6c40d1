"""anonrelay — Main entry point."""

import asyncio
import logging
import os
import sys
from dataclasses import dataclass
from typing import Optional

from .admin import AdminCommands
from .channel_registry import ChannelRegistry
from .channels.telegram import TelegramChannel
from .config import RelaySettings, load_settings
from .db.backing import create_backing
from .dispatcher import Dispatcher
from .errors import StoreUnavailable
from .gate import AccessGate
from .identity import IdentityManager
from .moderation import Moderation
from .relay import RelayPipeline
from .store import StateStore
from .transport import Transport

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("anonrelay")


def setup_logging(level: str = "INFO", log_file: Optional[str] = None):
    """Configure root logging: stderr always, plus a file when requested."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(os.path.expanduser(log_file), encoding="utf-8"))
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )
    # httpx logs every Telegram long-poll request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)


@dataclass
class RelayApp:
    """Wired components sharing one store."""

    store: StateStore
    identity: IdentityManager
    gate: AccessGate
    moderation: Moderation
    channels: ChannelRegistry
    relay: RelayPipeline
    admin: AdminCommands
    dispatcher: Dispatcher


def build_app(settings: RelaySettings, store: StateStore, transport: Transport) -> RelayApp:
    """Wire every component around an already-loaded store."""
    identity = IdentityManager(store)
    gate = AccessGate(settings.role_codes(), identity)
    moderation = Moderation(store)
    channels = ChannelRegistry(store, default_channel=settings.channel_id)
    relay = RelayPipeline(
        store, channels, moderation, transport,
        max_length=settings.max_message_length,
    )
    admin = AdminCommands(settings.admin_id, store, channels, moderation, transport)
    dispatcher = Dispatcher(gate, relay, admin, transport)
    return RelayApp(
        store=store,
        identity=identity,
        gate=gate,
        moderation=moderation,
        channels=channels,
        relay=relay,
        admin=admin,
        dispatcher=dispatcher,
    )


async def run(settings: Optional[RelaySettings] = None):
    """Main run loop.

    Raises:
        StoreUnavailable: persisted state exists but cannot be loaded. The
            bot never starts serving on top of unreadable state.
    """
    settings = settings or load_settings()
    if not settings.bot_token:
        raise SystemExit("RELAY_BOT_TOKEN is not set.")

    backing = create_backing(settings)
    store = StateStore(backing)
    await store.load()

    telegram = TelegramChannel(settings.bot_token, admin_id=settings.admin_id)
    app = build_app(settings, store, telegram)
    telegram.set_dispatcher(app.dispatcher)

    try:
        await telegram.start()
        bound = app.channels.get()
        logger.info(f"Relay bot running. Channel: {bound if bound else 'not bound (waiting for /bind)'}")
        while telegram.running:
            await asyncio.sleep(1)
    finally:
        await shutdown(telegram, store, backing)


async def shutdown(telegram, store: StateStore, backing):
    """Stop polling, write the state one last time and release the backing.

    Every mutation was already flushed when it happened, so a failing final
    write is logged rather than raised.
    """
    await telegram.stop()
    try:
        await store.flush()
    except StoreUnavailable as e:
        logger.error(f"Final state flush failed during shutdown: {e}")
    finally:
        close = getattr(backing, "close", None)
        if close:
            await close()
    logger.info("Relay bot stopped.")


def main():
    """Entry point."""
    settings = load_settings()
    setup_logging(settings.log_level, settings.log_file)
    try:
        asyncio.run(run(settings))
    except KeyboardInterrupt:
        pass
    except StoreUnavailable as e:
        logger.critical(f"Cannot load relay state: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
