"""Reading and writing versioned snapshot envelopes."""

from typing import TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from shortly.core.errors import PersistenceError
from shortly.models.database import BlobStore
from shortly.models.records import SCHEMA_VERSION

import structlog

logger = structlog.get_logger()

SnapshotT = TypeVar("SnapshotT", bound=BaseModel)


def read_snapshot(blobs: BlobStore, key: str, model: type[SnapshotT]) -> SnapshotT:
    """Load `key` as `model`. A missing key yields an empty snapshot."""
    raw = blobs.get(key)
    if raw is None:
        return model()

    try:
        snapshot = model.model_validate_json(raw)
    except SchemaError as exc:
        raise PersistenceError(f"Snapshot '{key}' is unreadable.") from exc

    if snapshot.schema_version != SCHEMA_VERSION:
        raise PersistenceError(
            f"Snapshot '{key}' has schema version {snapshot.schema_version}, "
            f"expected {SCHEMA_VERSION}."
        )
    return snapshot


def write_snapshot(blobs: BlobStore, key: str, snapshot: BaseModel) -> None:
    payload = snapshot.model_dump_json()
    blobs.put(key, payload)
    logger.debug("snapshot_written", key=key, size=len(payload))
