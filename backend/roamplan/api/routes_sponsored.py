# backend/roamplan/api/routes_sponsored.py

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query, Response
from pydantic import BaseModel, Field

from roamplan.core.errors import NotFoundError
from roamplan.core.security import get_admin_user, get_optional_user
from roamplan.db.sqlite_store import SQLiteStore, get_store
from roamplan.models.sponsored_models import SponsoredItemIn, SponsoredItemOut, SponsoredListOut
from roamplan.services.sponsored_service import (
    blend_with_organic,
    create_sponsored_item,
    sponsored_for_destination,
)

router = APIRouter(prefix="/sponsored", tags=["sponsored"])


class BlendIn(BaseModel):
    destination: str = Field(min_length=1)
    organic: List[Dict[str, Any]]


def _preferences_for(user: Optional[Dict[str, Any]], store: SQLiteStore) -> Optional[Dict[str, Any]]:
    return store.get_preferences(user["id"]) if user else None


@router.get("", response_model=SponsoredListOut)
def list_sponsored(
    destination: str = Query(..., min_length=1),
    limit: int = Query(5, ge=1, le=20),
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    store: SQLiteStore = Depends(get_store),
):
    items = sponsored_for_destination(store, destination, _preferences_for(user, store), limit=limit)
    return {"destination": destination, "items": items}


@router.post("/blend")
def blend(
    data: BlendIn,
    user: Optional[Dict[str, Any]] = Depends(get_optional_user),
    store: SQLiteStore = Depends(get_store),
):
    """Merge sponsored placements into a client's organic result list."""
    sponsored = sponsored_for_destination(store, data.destination, _preferences_for(user, store))
    return {"destination": data.destination, "items": blend_with_organic(data.organic, sponsored)}


@router.post("", response_model=SponsoredItemOut, status_code=201)
def create_item(
    data: SponsoredItemIn,
    admin: Dict[str, Any] = Depends(get_admin_user),
    store: SQLiteStore = Depends(get_store),
):
    return create_sponsored_item(store, data)


@router.delete("/{item_id}", status_code=204)
def delete_item(
    item_id: int,
    admin: Dict[str, Any] = Depends(get_admin_user),
    store: SQLiteStore = Depends(get_store),
):
    if not store.delete_sponsored_item(item_id):
        raise NotFoundError("Sponsored item", item_id)
    return Response(status_code=204)
