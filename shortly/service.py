"""
Link service: the operations a presentation layer or HTTP front-end calls.

Flow:
  create  → known owner → validate URL + expiry → allocate slug → insert
  edit    → validate every changed field → patch → sweep the record
  access  → sweep the record → status check → click +1 → destination
  list    → sweep everything → owner scope → text / status filter

Every operation either completes (and is persisted) or raises a ShortlyError
and leaves the stores untouched.
"""

from datetime import datetime

from shortly.config import Settings, get_settings
from shortly.core.errors import InvalidStatusFilter, LinkNotFound, OwnerNotFound
from shortly.core.lifecycle import Clock, LifecycleEngine, LinkStatus, compute_status, utcnow
from shortly.core.slugs import SlugAllocator
from shortly.core.validation import normalize_url, parse_expiry
from shortly.models.records import Link
from shortly.store.accounts import AccountStore
from shortly.store.links import LinkStore

import structlog

logger = structlog.get_logger()


class _Unset:
    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset()


class LinkService:
    def __init__(
        self,
        links: LinkStore,
        accounts: AccountStore | None = None,
        settings: Settings | None = None,
        clock: Clock = utcnow,
    ):
        self.settings = settings or get_settings()
        self.links = links
        self.accounts = accounts
        self.slugs = SlugAllocator(links, self.settings)
        self.lifecycle = LifecycleEngine(links, clock)

    # --- helpers ---

    def short_url(self, link: Link) -> str:
        return f"{self.settings.base_url.rstrip('/')}/{link.slug}"

    def link_status(self, link: Link) -> LinkStatus:
        return self.lifecycle.status(link)

    def get_link(self, link_id: str, owner_id: str | None = None) -> Link:
        link = self.links.find_by_id(link_id)
        # Links owned by someone else look exactly like missing ones
        if link is None or (owner_id is not None and link.owner_id != owner_id):
            raise LinkNotFound()
        return link

    # --- operations ---

    def create_link(
        self,
        owner_id: str,
        destination_raw: str,
        requested_slug: str | None = None,
        enabled: bool = True,
        expires_at_raw: datetime | str | None = None,
    ) -> Link:
        if not owner_id:
            raise ValueError("owner_id is required to create a link")
        if self.accounts is not None and self.accounts.find_by_id(owner_id) is None:
            raise OwnerNotFound(field="owner_id")

        destination_url = normalize_url(destination_raw)
        expires_at = parse_expiry(expires_at_raw)
        slug = self.slugs.allocate(requested_slug)

        link = Link(
            owner_id=owner_id,
            destination_url=destination_url,
            slug=slug,
            created_at=self.lifecycle.now(),
            expires_at=expires_at,
            enabled=bool(enabled),
        )
        self.links.insert(link)

        logger.info("link_created", link_id=link.id, slug=slug, owner_id=owner_id,
                    short_url=self.short_url(link), expires_at=expires_at)
        return self.links.find_by_id(link.id)

    def edit_link(
        self,
        link_id: str,
        destination_raw: str | None = None,
        requested_slug: str | None = None,
        enabled: bool | None = None,
        expires_at_raw: datetime | str | None | _Unset = UNSET,
        owner_id: str | None = None,
    ) -> Link:
        """Patch a link. `None` leaves a field as is; for expiry, UNSET does,
        while None or "" clears it."""
        link = self.get_link(link_id, owner_id)

        patch: dict = {}
        if destination_raw is not None:
            patch["destination_url"] = normalize_url(destination_raw)
        if requested_slug is not None:
            patch["slug"] = self.slugs.allocate(requested_slug, exclude_id=link.id, require_slug=True)
        if not isinstance(expires_at_raw, _Unset):
            patch["expires_at"] = parse_expiry(expires_at_raw)
        if enabled is not None:
            patch["enabled"] = bool(enabled)

        if patch:
            self.links.update(link.id, patch)
            logger.info("link_edited", link_id=link.id, fields=sorted(patch))

        # Enabling with a past expiry lands back on disabled here
        self.lifecycle.sweep_expired(link.id)
        return self.links.find_by_id(link.id)

    def toggle_link(self, link_id: str, owner_id: str | None = None) -> Link:
        link = self.get_link(link_id, owner_id)
        return self.lifecycle.set_enabled(link.id, not link.enabled)

    def delete_link(self, link_id: str, owner_id: str | None = None) -> None:
        link = self.get_link(link_id, owner_id)
        self.links.delete(link.id)
        logger.info("link_deleted", link_id=link.id, slug=link.slug)

    def access_link(self, link_id: str) -> str:
        return self.lifecycle.record_access(link_id)

    def access_slug(self, slug: str) -> str:
        link = self.links.find_by_slug(slug)
        if link is None:
            raise LinkNotFound()
        return self.lifecycle.record_access(link.id)

    def list_links(
        self,
        owner_id: str,
        query: str | None = None,
        status: LinkStatus | str | None = None,
    ) -> list[Link]:
        self.lifecycle.sweep_expired()

        try:
            wanted = None if status in (None, "all") else LinkStatus(status)
        except ValueError as exc:
            raise InvalidStatusFilter(f"Unknown status filter: {status!r}.", field="status") from exc
        needle = (query or "").strip().lower()
        now = self.lifecycle.now()

        results = []
        for link in self.links.list_by_owner(owner_id):
            if needle and needle not in f"{link.slug} {link.destination_url}".lower():
                continue
            if wanted is not None and compute_status(link, now) is not wanted:
                continue
            results.append(link)
        return results
