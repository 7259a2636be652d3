"""
Persisted records (links, accounts, the current session) and the
versioned snapshot envelopes they are written in.

Each collection lives under its own blob key and is always written whole.
"""

from datetime import datetime, timezone
from uuid import uuid4

from pydantic import BaseModel, Field, NonNegativeInt

SCHEMA_VERSION = 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    """Opaque, never-reused identifier like 'lnk_3f9a…'."""
    return f"{prefix}_{uuid4().hex}"


class Link(BaseModel):
    id: str = Field(default_factory=lambda: new_id("lnk"))
    owner_id: str
    destination_url: str
    slug: str
    created_at: datetime = Field(default_factory=_utcnow)
    expires_at: datetime | None = None
    enabled: bool = True
    click_count: NonNegativeInt = 0


class Account(BaseModel):
    id: str = Field(default_factory=lambda: new_id("usr"))
    email: str
    name: str = ""
    created_at: datetime = Field(default_factory=_utcnow)


class Session(BaseModel):
    user_id: str
    email: str


# ---------------------------------------------------------------------------
# Snapshot envelopes
# ---------------------------------------------------------------------------

class LinkSnapshot(BaseModel):
    schema_version: int = SCHEMA_VERSION
    links: list[Link] = Field(default_factory=list)


class AccountSnapshot(BaseModel):
    schema_version: int = SCHEMA_VERSION
    accounts: list[Account] = Field(default_factory=list)


class SessionSnapshot(BaseModel):
    schema_version: int = SCHEMA_VERSION
    session: Session | None = None
