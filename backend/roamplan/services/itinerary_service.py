# backend/roamplan/services/itinerary_service.py

import hashlib
import json
from typing import Any, Dict, List

from roamplan.core.errors import ConflictError, NotFoundError
from roamplan.core.logger import logger
from roamplan.db.sqlite_store import SQLiteStore
from roamplan.models.itinerary_models import ItineraryIn, ItineraryOut
from roamplan.services.storage_service import ObjectStorage, with_url


def generate_content_hash(itinerary: ItineraryIn) -> str:
    """Stable hash of an itinerary's content, used to detect duplicate saves."""
    content_str = json.dumps(itinerary.model_dump(mode="json"), sort_keys=True)
    return hashlib.sha256(content_str.encode("utf-8")).hexdigest()


class ItineraryService:
    def __init__(self, store: SQLiteStore, storage: ObjectStorage):
        self.store = store
        self.storage = storage

    def _out(self, row: Dict[str, Any]) -> ItineraryOut:
        photos = [with_url(p, self.storage) for p in row.get("photos", [])]
        return ItineraryOut(**{**row, "photos": photos})

    def create(self, user_id: int, data: ItineraryIn) -> ItineraryOut:
        content_hash = generate_content_hash(data)
        if self.store.find_itinerary_by_hash(user_id, content_hash):
            raise ConflictError("Itinerary already saved")

        itinerary_id = self.store.create_itinerary(user_id, data.model_dump(mode="json"), content_hash)
        logger.info(f"User {user_id} saved itinerary {itinerary_id} ({data.destination})")
        return self.get(user_id, itinerary_id)

    def get(self, user_id: int, itinerary_id: int) -> ItineraryOut:
        row = self.store.get_itinerary(user_id, itinerary_id)
        if not row:
            raise NotFoundError("Itinerary", itinerary_id)
        return self._out(row)

    def list(self, user_id: int) -> List[ItineraryOut]:
        return [self._out(row) for row in self.store.list_itineraries(user_id)]

    def update(self, user_id: int, itinerary_id: int, data: ItineraryIn) -> ItineraryOut:
        self.get(user_id, itinerary_id)

        content_hash = generate_content_hash(data)
        if self.store.find_itinerary_by_hash(user_id, content_hash, exclude_id=itinerary_id):
            raise ConflictError("Another saved itinerary has identical content")

        self.store.update_itinerary(user_id, itinerary_id, data.model_dump(mode="json"), content_hash)
        return self.get(user_id, itinerary_id)

    def delete(self, user_id: int, itinerary_id: int):
        keys = self.store.delete_itinerary(user_id, itinerary_id)
        if keys is None:
            raise NotFoundError("Itinerary", itinerary_id)

        for key in keys:
            self.storage.delete(key)
        logger.info(f"User {user_id} deleted itinerary {itinerary_id} ({len(keys)} photos)")
