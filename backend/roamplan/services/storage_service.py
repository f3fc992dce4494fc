# backend/roamplan/services/storage_service.py

from functools import lru_cache
from pathlib import Path, PurePosixPath
from typing import Any, Dict
from uuid import uuid4

from roamplan.core.config_loader import settings
from roamplan.core.errors import UploadRejectedError, ValidationFailedError
from roamplan.core.logger import logger
from roamplan.db.sqlite_store import SQLiteStore


ALLOWED_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
}


class ObjectStorage:
    """Key/value blob storage. Keys are POSIX-style relative paths."""

    def put(self, key: str, data: bytes, content_type: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def url(self, key: str) -> str:
        raise NotImplementedError


def check_key(key: str) -> str:
    path = PurePosixPath(key)
    if not key or path.is_absolute() or ".." in path.parts or key.startswith("\\"):
        raise ValidationFailedError(f"Invalid storage key: {key!r}")
    return key


class LocalObjectStorage(ObjectStorage):
    def __init__(self, root: str, public_base_url: str):
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)
        self.public_base_url = public_base_url.rstrip("/")

    def _path(self, key: str) -> Path:
        return self.root / check_key(key)

    def put(self, key: str, data: bytes, content_type: str) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def exists(self, key: str) -> bool:
        return self._path(key).exists()

    def url(self, key: str) -> str:
        return f"{self.public_base_url}/{check_key(key)}"


@lru_cache
def get_storage() -> ObjectStorage:
    return LocalObjectStorage(settings.STORAGE_DIR, settings.STORAGE_PUBLIC_BASE_URL)


# ---------------------------------------------------------------------------
# UPLOAD VALIDATION
# ---------------------------------------------------------------------------
def _sniff(data: bytes) -> str:
    if data.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if data.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return "application/octet-stream"


def validate_image(data: bytes, content_type: str, max_bytes: int) -> str:
    """Return the file extension for a valid image upload."""
    if not data:
        raise UploadRejectedError("Empty upload", status_code=422)

    if len(data) > max_bytes:
        raise UploadRejectedError(
            f"Upload is {len(data)} bytes; the limit is {max_bytes}",
            status_code=413,
            suggestion="Resize or compress the image",
        )

    content_type = (content_type or "").split(";")[0].strip().lower()
    if content_type not in ALLOWED_TYPES:
        raise UploadRejectedError(
            f"Unsupported content type: {content_type or 'unknown'}",
            status_code=415,
            suggestion=f"Upload one of: {', '.join(sorted(ALLOWED_TYPES))}",
        )

    if _sniff(data) != content_type:
        raise UploadRejectedError("File contents do not match the declared content type", status_code=415)

    return ALLOWED_TYPES[content_type]


def store_itinerary_photo(
    store: SQLiteStore,
    storage: ObjectStorage,
    itinerary_id: int,
    content_type: str,
    data: bytes,
) -> Dict[str, Any]:
    try:
        ext = validate_image(data, content_type, settings.MAX_UPLOAD_BYTES)
    except UploadRejectedError as e:
        logger.warning(f"Upload rejected for itinerary {itinerary_id}: {e.message}")
        raise

    content_type = content_type.split(";")[0].strip().lower()
    key = f"itineraries/{itinerary_id}/{uuid4().hex}.{ext}"
    storage.put(key, data, content_type)

    photo_id = store.add_photo(itinerary_id, key, content_type, len(data))
    logger.info(f"Stored photo {photo_id} ({len(data)} bytes) as {key}")

    photo = next(p for p in store.list_photos(itinerary_id) if p["id"] == photo_id)
    return with_url(photo, storage)


def with_url(photo: Dict[str, Any], storage: ObjectStorage) -> Dict[str, Any]:
    return {**photo, "url": storage.url(photo["storage_key"])}
