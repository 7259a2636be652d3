"""
Input validation: destination URLs, slugs, expiry timestamps.

Rules:
  - Destinations must be absolute http/https URLs; a missing scheme means https
  - Slugs are lowercase [a-z0-9_-], 3–32 chars, alphanumeric at both ends
  - Reserved slugs (routes the front-end owns) are never assignable
  - Expiry is stored as an aware UTC datetime; naive input is read as UTC
"""

import re
from datetime import datetime, timezone

from pydantic import HttpUrl, TypeAdapter
from pydantic import ValidationError as SchemaError

from shortly.config import Settings, get_settings
from shortly.core.errors import (
    EmptySlug,
    InvalidExpiry,
    InvalidUrl,
    SlugCharsetInvalid,
    SlugLengthInvalid,
    SlugReserved,
    UnsupportedScheme,
)

ALLOWED_SCHEMES = ("http", "https")

_HTTP_URL = TypeAdapter(HttpUrl)

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*://")
_SLUG_RE = re.compile(r"^[a-z0-9][a-z0-9\-_]*[a-z0-9]$")


# ---------------------------------------------------------------------------
# Destination URLs
# ---------------------------------------------------------------------------

def has_scheme(url: str) -> bool:
    return bool(_SCHEME_RE.match(url))


def normalize_url(raw: str | None) -> str:
    """Trim, default to https://, and return the canonical absolute URL.

    Canonical means the WHATWG serialization pydantic's HttpUrl produces:
    lowercase scheme and host, punycode for international hosts, default port
    dropped, "/" for an empty path, and unsafe characters percent-encoded.

    Raises InvalidUrl when the input can't be parsed as an absolute URL and
    UnsupportedScheme for anything other than http/https.
    """
    text = str(raw or "").strip()
    if not text:
        raise InvalidUrl("Please enter a URL.", field="destination_url")

    if text.startswith("//"):
        text = f"https:{text}"
    elif not has_scheme(text):
        text = f"https://{text}"

    scheme = text.split(":", 1)[0].lower()
    if scheme not in ALLOWED_SCHEMES:
        raise UnsupportedScheme(field="destination_url")

    try:
        url = _HTTP_URL.validate_python(text)
    except SchemaError as exc:
        raise InvalidUrl(field="destination_url") from exc
    return str(url)


# ---------------------------------------------------------------------------
# Slugs
# ---------------------------------------------------------------------------

def sanitize_slug(raw: str | None) -> str:
    text = str(raw or "").strip().lower()
    if not text:
        return ""
    text = text.replace(" ", "-")
    text = re.sub(r"[^a-z0-9\-_]", "", text)
    text = re.sub(r"-+", "-", text)
    text = re.sub(r"_+", "_", text)
    return text.strip("-_")


def validate_slug(slug: str, settings: Settings | None = None) -> None:
    """Raise the matching ValidationError if `slug` can't be assigned."""
    settings = settings or get_settings()

    if not slug:
        raise EmptySlug(field="slug")

    if not settings.slug_min_length <= len(slug) <= settings.slug_max_length:
        raise SlugLengthInvalid(
            f"Slug must be {settings.slug_min_length}–{settings.slug_max_length} characters.",
            field="slug",
        )

    if not _SLUG_RE.match(slug):
        raise SlugCharsetInvalid(field="slug")

    if slug in settings.reserved_slugs:
        raise SlugReserved(f"'{slug}' is reserved and cannot be used.", field="slug")


# ---------------------------------------------------------------------------
# Expiry
# ---------------------------------------------------------------------------

def parse_expiry(raw: datetime | str | None) -> datetime | None:
    """None / "" mean "never expires". Returns an aware UTC datetime."""
    if raw is None:
        return None

    if isinstance(raw, datetime):
        value = raw
    else:
        text = str(raw).strip()
        if not text:
            return None
        try:
            value = datetime.fromisoformat(text)
        except ValueError as exc:
            raise InvalidExpiry(field="expires_at") from exc

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
