"""Pytest configuration."""

import os
from datetime import datetime, timedelta, timezone

import pytest

# Ensure test environment
os.environ.setdefault("SHORTLY_STORE_URL", "memory://")
os.environ.setdefault("SHORTLY_DEBUG", "true")

from shortly.config import Settings
from shortly.models.database import MemoryBlobStore
from shortly.service import LinkService
from shortly.store.accounts import AccountStore
from shortly.store.links import LinkStore

T0 = datetime(2026, 1, 15, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Settable clock so expiry can be driven from tests."""

    def __init__(self, now: datetime = T0):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def settings():
    return Settings(store_url="memory://", debug=True)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def blobs():
    return MemoryBlobStore()


@pytest.fixture
def link_store(blobs):
    store = LinkStore(blobs)
    store.load()
    return store


@pytest.fixture
def account_store(blobs):
    store = AccountStore(blobs)
    store.load()
    return store


@pytest.fixture
def service(link_store, account_store, settings, clock):
    return LinkService(link_store, account_store, settings=settings, clock=clock)
