"""Blob stores: where snapshots are read from and written to."""

from typing import Protocol

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from shortly.config import Settings, get_settings
from shortly.core.errors import PersistenceError
from shortly.models.tables import Base, Blob

import structlog

logger = structlog.get_logger()

MEMORY_URL = "memory://"


class BlobStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def put(self, key: str, value: str) -> None: ...

    def close(self) -> None: ...


class MemoryBlobStore:
    """In-process store. Nothing survives the process."""

    def __init__(self):
        self._blobs: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._blobs.get(key)

    def put(self, key: str, value: str) -> None:
        self._blobs[key] = value

    def close(self) -> None:
        pass


class SqlBlobStore:
    """
    SQLAlchemy-backed store over the `blobs` table.

    Writes are retried `retries` times on OperationalError (locked database,
    dropped connection). Anything else, or running out of retries, surfaces as
    PersistenceError and the write is not committed.
    """

    def __init__(self, url: str, retries: int = 2, echo: bool = False):
        self._retries = retries
        self._engine = create_engine(url, pool_pre_ping=True, echo=echo)
        Base.metadata.create_all(self._engine)
        self._session = sessionmaker(self._engine, expire_on_commit=False)

    def get(self, key: str) -> str | None:
        try:
            with self._session() as session:
                blob = session.get(Blob, key)
                return blob.value if blob else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Could not read '{key}'.") from exc

    def put(self, key: str, value: str) -> None:
        attempt = 0
        while True:
            try:
                with self._session.begin() as session:
                    session.merge(Blob(key=key, value=value))
                return
            except OperationalError as exc:
                if attempt >= self._retries:
                    raise PersistenceError(f"Could not write '{key}'.") from exc
                attempt += 1
                logger.warning("store_write_retry", key=key, attempt=attempt, error=str(exc.orig))
            except SQLAlchemyError as exc:
                raise PersistenceError(f"Could not write '{key}'.") from exc

    def close(self) -> None:
        self._engine.dispose()


def create_blob_store(settings: Settings | None = None) -> BlobStore:
    settings = settings or get_settings()
    if settings.store_url == MEMORY_URL:
        return MemoryBlobStore()
    return SqlBlobStore(
        settings.store_url,
        retries=settings.store_write_retries,
        echo=settings.debug,
    )
