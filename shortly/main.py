"""
Shortly: short-link core.
Entry point: logging setup and the service lifecycle (load → operate → flush).
"""

from collections.abc import Iterator
from contextlib import contextmanager

from shortly.config import Settings, get_settings
from shortly.core.lifecycle import Clock, utcnow
from shortly.models.database import create_blob_store
from shortly.service import LinkService
from shortly.store.accounts import AccountStore
from shortly.store.links import LinkStore

import structlog

logger = structlog.get_logger()


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
    )


@contextmanager
def open_service(settings: Settings | None = None, clock: Clock = utcnow) -> Iterator[LinkService]:
    """Load every snapshot, sweep expired links, yield the service, flush on a clean exit."""
    settings = settings or get_settings()
    if not structlog.is_configured():
        configure_logging(settings)
    blobs = create_blob_store(settings)

    try:
        links = LinkStore(blobs)
        accounts = AccountStore(blobs)
        links.load()
        accounts.load()

        service = LinkService(links, accounts, settings=settings, clock=clock)
        service.lifecycle.sweep_expired()
        logger.info("shortly_starting", base_url=settings.base_url, links=len(links))

        try:
            yield service
        except BaseException:
            # Mutations are already written through; the body's error propagates as is
            logger.warning("shortly_shutting_down", flushed=False)
            raise
        else:
            logger.info("shortly_shutting_down", flushed=True)
            links.flush()
            accounts.flush()
    finally:
        blobs.close()
