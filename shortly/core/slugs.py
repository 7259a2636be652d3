"""
Slug allocation: requested slugs are validated and checked for collisions;
otherwise a random slug is drawn.

Random slugs:
  - 6 chars over [a-z0-9] by default: 36^6 ≈ 2.2 billion combinations
  - At most 30 draws; running out is a hard failure. Widen the alphabet or
    the length instead of retrying.
"""

import secrets

from shortly.config import Settings, get_settings
from shortly.core.errors import EmptySlug, SlugAllocationExhausted, SlugTaken
from shortly.core.validation import sanitize_slug, validate_slug
from shortly.store.links import LinkStore

import structlog

logger = structlog.get_logger()


def generate_slug(length: int, alphabet: str) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


class SlugAllocator:
    def __init__(self, links: LinkStore, settings: Settings | None = None):
        self._links = links
        self._settings = settings or get_settings()

    def allocate(
        self,
        requested_slug: str | None = None,
        exclude_id: str | None = None,
        require_slug: bool = False,
    ) -> str:
        slug = sanitize_slug(requested_slug)

        if slug:
            validate_slug(slug, self._settings)
            if self._links.exists(slug, exclude_id=exclude_id):
                raise SlugTaken(f"'{slug}' is already taken.", field="slug")
            return slug

        if require_slug:
            raise EmptySlug(field="slug")

        return self._random_slug()

    def _random_slug(self) -> str:
        s = self._settings
        for _ in range(s.slug_max_attempts):
            candidate = generate_slug(s.slug_length, s.slug_alphabet)
            if candidate in s.reserved_slugs or self._links.exists(candidate):
                continue
            return candidate

        logger.error("slug_allocation_exhausted", attempts=s.slug_max_attempts,
                     length=s.slug_length, links=len(self._links))
        raise SlugAllocationExhausted(
            f"No free slug after {s.slug_max_attempts} attempts.", field="slug"
        )
