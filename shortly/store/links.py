"""
Link store: the in-memory link collection and its write-through snapshot.

Design:
  - Records are kept most-recent-first (new links are prepended)
  - Every mutation writes the whole collection before it is applied in memory,
    so a failed write leaves the store exactly as it was
  - Callers get copies; the only way to change a record is through the store
"""

from shortly.models.database import BlobStore
from shortly.models.records import Link, LinkSnapshot
from shortly.store.snapshots import read_snapshot, write_snapshot

import structlog

logger = structlog.get_logger()

LINKS_KEY = "shortly_links_v1"

IMMUTABLE_FIELDS = frozenset({"id", "owner_id", "created_at"})


class LinkStore:
    def __init__(self, blobs: BlobStore):
        self._blobs = blobs
        self._links: list[Link] = []

    # --- lifecycle ---

    def load(self) -> None:
        snapshot = read_snapshot(self._blobs, LINKS_KEY, LinkSnapshot)
        self._links = list(snapshot.links)
        logger.info("links_loaded", count=len(self._links))

    def flush(self) -> None:
        self._commit(self._links)

    def _commit(self, links: list[Link]) -> None:
        write_snapshot(self._blobs, LINKS_KEY, LinkSnapshot(links=links))
        self._links = links

    # --- mutations ---

    def insert(self, link: Link) -> None:
        """Add a new record. The caller has just checked slug uniqueness."""
        self._commit([link.model_copy(), *self._links])

    def update(self, link_id: str, patch: dict) -> bool:
        bad = IMMUTABLE_FIELDS.intersection(patch)
        if bad:
            raise ValueError(f"Immutable link fields cannot be patched: {sorted(bad)}")

        for idx, link in enumerate(self._links):
            if link.id == link_id:
                merged = Link.model_validate({**link.model_dump(), **patch})
                links = list(self._links)
                links[idx] = merged
                self._commit(links)
                return True
        return False

    def delete(self, link_id: str) -> bool:
        remaining = [l for l in self._links if l.id != link_id]
        if len(remaining) == len(self._links):
            return False
        self._commit(remaining)
        return True

    # --- queries ---

    def find_by_id(self, link_id: str) -> Link | None:
        for link in self._links:
            if link.id == link_id:
                return link.model_copy()
        return None

    def find_by_slug(self, slug: str) -> Link | None:
        wanted = (slug or "").lower()
        for link in self._links:
            if link.slug.lower() == wanted:
                return link.model_copy()
        return None

    def list_by_owner(self, owner_id: str) -> list[Link]:
        return [l.model_copy() for l in self._links if l.owner_id == owner_id]

    def all(self) -> list[Link]:
        return [l.model_copy() for l in self._links]

    def exists(self, slug: str, exclude_id: str | None = None) -> bool:
        wanted = (slug or "").lower()
        return any(
            l.slug.lower() == wanted and l.id != exclude_id
            for l in self._links
        )

    def __len__(self) -> int:
        return len(self._links)
