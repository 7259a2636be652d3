"""
Error taxonomy for the short-link core.

Categories:
  - ValidationError  → caller-correctable input, carries the offending field
  - ConflictError    → slug collisions; caller may resubmit with another slug
  - StateError       → link missing / expired / disabled, or unknown owner;
                       a denial, not a fault
  - PersistenceError → snapshot read/write failed; the mutation is not committed

Every concrete error has a stable machine-readable `code`.
"""


class ShortlyError(Exception):
    code: str = "shortly_error"
    default_detail: str = "Short-link operation failed"

    def __init__(self, detail: str | None = None, *, field: str | None = None):
        self.detail = detail or self.default_detail
        self.field = field
        super().__init__(self.detail)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, field={self.field!r}, detail={self.detail!r})"


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class ValidationError(ShortlyError):
    code = "validation_error"


class InvalidUrl(ValidationError):
    code = "invalid_url"
    default_detail = "That doesn't look like a valid URL."


class UnsupportedScheme(ValidationError):
    code = "unsupported_scheme"
    default_detail = "Only http/https URLs are supported."


class EmptySlug(ValidationError):
    code = "empty_slug"
    default_detail = "Slug is required."


class SlugLengthInvalid(ValidationError):
    code = "slug_length_invalid"
    default_detail = "Slug has an invalid length."


class SlugCharsetInvalid(ValidationError):
    code = "slug_charset_invalid"
    default_detail = "Use letters, numbers, dashes, underscores; start and end with a letter or number."


class SlugReserved(ValidationError):
    code = "slug_reserved"
    default_detail = "That slug is reserved."


class InvalidExpiry(ValidationError):
    code = "invalid_expiry"
    default_detail = "Invalid expiration date."


class InvalidEmail(ValidationError):
    code = "invalid_email"
    default_detail = "Please enter a valid email address."


class InvalidStatusFilter(ValidationError):
    code = "invalid_status_filter"
    default_detail = "Unknown status filter."


# ---------------------------------------------------------------------------
# Conflicts
# ---------------------------------------------------------------------------

class ConflictError(ShortlyError):
    code = "conflict"


class SlugTaken(ConflictError):
    code = "slug_taken"
    default_detail = "That slug is already taken."


class SlugAllocationExhausted(ConflictError):
    code = "slug_allocation_exhausted"
    default_detail = "Failed to generate a unique slug."


# ---------------------------------------------------------------------------
# Link state
# ---------------------------------------------------------------------------

class StateError(ShortlyError):
    code = "state_error"


class LinkNotFound(StateError):
    code = "link_not_found"
    default_detail = "Link not found."


class LinkExpired(StateError):
    code = "link_expired"
    default_detail = "This link has expired."


class LinkDisabled(StateError):
    code = "link_disabled"
    default_detail = "This link is disabled."


class OwnerNotFound(StateError):
    code = "owner_not_found"
    default_detail = "Sign in to create links."


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------

class PersistenceError(ShortlyError):
    code = "persistence_error"
    default_detail = "Could not persist short-link state."
