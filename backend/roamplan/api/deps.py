# backend/roamplan/api/deps.py

from fastapi import Depends

from roamplan.db.sqlite_store import SQLiteStore, get_store
from roamplan.services.itinerary_service import ItineraryService
from roamplan.services.partner_service import PartnerService
from roamplan.services.storage_service import ObjectStorage, get_storage


def get_itinerary_service(
    store: SQLiteStore = Depends(get_store),
    storage: ObjectStorage = Depends(get_storage),
) -> ItineraryService:
    return ItineraryService(store, storage)


def get_partner_service(store: SQLiteStore = Depends(get_store)) -> PartnerService:
    return PartnerService(store)
