# backend/roamplan/api/routes_itinerary.py

from typing import Any, Dict, List

from fastapi import APIRouter, Depends, File, Response, UploadFile

from roamplan.core.config_loader import settings
from roamplan.core.security import get_current_user
from roamplan.db.sqlite_store import SQLiteStore, get_store
from roamplan.models.budget_models import BudgetBreakdown
from roamplan.models.itinerary_models import ItineraryIn, ItineraryOut, ItinerarySummaryOut, PhotoOut
from roamplan.services.budget_service import calculate_budget
from roamplan.services.export_service import render_markdown
from roamplan.services.itinerary_service import ItineraryService
from roamplan.services.storage_service import ObjectStorage, get_storage, store_itinerary_photo
from roamplan.services.summary_service import summarize_itinerary
from roamplan.api.deps import get_itinerary_service

router = APIRouter(prefix="/itineraries", tags=["itineraries"])


@router.post("", response_model=ItineraryOut, status_code=201)
def save_itinerary(
    data: ItineraryIn,
    user: Dict[str, Any] = Depends(get_current_user),
    service: ItineraryService = Depends(get_itinerary_service),
):
    """Save an itinerary. 409 if the user already saved identical content."""
    return service.create(user["id"], data)


@router.get("", response_model=List[ItineraryOut])
def list_itineraries(
    user: Dict[str, Any] = Depends(get_current_user),
    service: ItineraryService = Depends(get_itinerary_service),
):
    return service.list(user["id"])


@router.get("/{itinerary_id}", response_model=ItineraryOut)
def get_itinerary(
    itinerary_id: int,
    user: Dict[str, Any] = Depends(get_current_user),
    service: ItineraryService = Depends(get_itinerary_service),
):
    return service.get(user["id"], itinerary_id)


@router.put("/{itinerary_id}", response_model=ItineraryOut)
def update_itinerary(
    itinerary_id: int,
    data: ItineraryIn,
    user: Dict[str, Any] = Depends(get_current_user),
    service: ItineraryService = Depends(get_itinerary_service),
):
    return service.update(user["id"], itinerary_id, data)


@router.delete("/{itinerary_id}", status_code=204)
def delete_itinerary(
    itinerary_id: int,
    user: Dict[str, Any] = Depends(get_current_user),
    service: ItineraryService = Depends(get_itinerary_service),
):
    service.delete(user["id"], itinerary_id)
    return Response(status_code=204)


# --------------------------
# Budget / summary / export
# --------------------------
@router.get("/{itinerary_id}/budget", response_model=BudgetBreakdown)
def get_budget(
    itinerary_id: int,
    user: Dict[str, Any] = Depends(get_current_user),
    service: ItineraryService = Depends(get_itinerary_service),
):
    return calculate_budget(service.get(user["id"], itinerary_id))


@router.post("/{itinerary_id}/summary", response_model=ItinerarySummaryOut)
def summarize(
    itinerary_id: int,
    user: Dict[str, Any] = Depends(get_current_user),
    service: ItineraryService = Depends(get_itinerary_service),
):
    result = summarize_itinerary(service.get(user["id"], itinerary_id))
    return {"itinerary_id": itinerary_id, **result}


@router.get("/{itinerary_id}/export")
def export_itinerary(
    itinerary_id: int,
    user: Dict[str, Any] = Depends(get_current_user),
    service: ItineraryService = Depends(get_itinerary_service),
):
    itinerary = service.get(user["id"], itinerary_id)
    body = render_markdown(itinerary, calculate_budget(itinerary))
    return Response(
        content=body,
        media_type="text/markdown; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="itinerary-{itinerary_id}.md"'},
    )


# --------------------------
# Photos
# --------------------------
@router.post("/{itinerary_id}/photos", response_model=PhotoOut, status_code=201)
def upload_photo(
    itinerary_id: int,
    file: UploadFile = File(...),
    user: Dict[str, Any] = Depends(get_current_user),
    service: ItineraryService = Depends(get_itinerary_service),
    store: SQLiteStore = Depends(get_store),
    storage: ObjectStorage = Depends(get_storage),
):
    service.get(user["id"], itinerary_id)

    # one byte past the limit is enough to reject
    data = file.file.read(settings.MAX_UPLOAD_BYTES + 1)
    return store_itinerary_photo(store, storage, itinerary_id, file.content_type or "", data)
