"""
Link lifecycle: status derivation, expiry sweep, click accounting.

Status is derived, never stored:
  expired   → expires_at is set and in the past (wins over everything)
  disabled  → enabled is False and not expired
  active    → enabled and not expired

Transitions:
  active ⇄ disabled       explicit toggle; enabling an expired link is refused
  active|disabled → expired   time-driven; only an edit to a future expiry undoes it
"""

from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum

from shortly.core.errors import LinkDisabled, LinkExpired, LinkNotFound
from shortly.models.records import Link
from shortly.store.links import LinkStore

import structlog

logger = structlog.get_logger()

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LinkStatus(str, Enum):
    ACTIVE = "active"
    DISABLED = "disabled"
    EXPIRED = "expired"


def is_expired(link: Link, now: datetime) -> bool:
    return link.expires_at is not None and now > link.expires_at


def compute_status(link: Link, now: datetime) -> LinkStatus:
    if is_expired(link, now):
        return LinkStatus.EXPIRED
    if not link.enabled:
        return LinkStatus.DISABLED
    return LinkStatus.ACTIVE


class LifecycleEngine:
    def __init__(self, links: LinkStore, clock: Clock = utcnow):
        self._links = links
        self._clock = clock

    def now(self) -> datetime:
        return self._clock()

    def status(self, link: Link) -> LinkStatus:
        return compute_status(link, self.now())

    def sweep_expired(self, link_id: str | None = None) -> int:
        """Disable every enabled-but-expired link (or just `link_id`).

        Idempotent; writes nothing when nothing has expired.
        Returns how many links were disabled.
        """
        now = self.now()
        if link_id is None:
            candidates = self._links.all()
        else:
            link = self._links.find_by_id(link_id)
            candidates = [link] if link else []

        disabled = 0
        for link in candidates:
            if link.enabled and is_expired(link, now):
                self._links.update(link.id, {"enabled": False})
                disabled += 1

        if disabled:
            logger.info("links_swept", disabled=disabled, scoped=link_id is not None)
        return disabled

    def record_access(self, link_id: str) -> str:
        """Count one click and return the destination to send the visitor to."""
        self.sweep_expired(link_id)

        link = self._links.find_by_id(link_id)
        if link is None:
            raise LinkNotFound()

        status = self.status(link)
        if status is LinkStatus.EXPIRED:
            logger.info("link_access_denied", link_id=link.id, slug=link.slug, status=status.value)
            raise LinkExpired()
        if status is LinkStatus.DISABLED:
            logger.info("link_access_denied", link_id=link.id, slug=link.slug, status=status.value)
            raise LinkDisabled()

        self._links.update(link.id, {"click_count": link.click_count + 1})
        logger.info("link_accessed", link_id=link.id, slug=link.slug, clicks=link.click_count + 1)
        return link.destination_url

    def set_enabled(self, link_id: str, enabled: bool) -> Link:
        link = self._links.find_by_id(link_id)
        if link is None:
            raise LinkNotFound()

        if enabled and is_expired(link, self.now()):
            raise LinkExpired("Extend the expiration date before enabling.")

        if link.enabled != enabled:
            self._links.update(link.id, {"enabled": enabled})
            logger.info("link_toggled", link_id=link.id, enabled=enabled)
        return self._links.find_by_id(link.id)
