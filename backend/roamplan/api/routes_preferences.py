# backend/roamplan/api/routes_preferences.py

from typing import Any, Dict

from fastapi import APIRouter, Depends

from roamplan.core.security import get_current_user
from roamplan.db.sqlite_store import SQLiteStore, get_store
from roamplan.models.preference_models import UserPreferences

router = APIRouter(prefix="/users/me/preferences", tags=["preferences"])


@router.get("", response_model=UserPreferences)
def get_preferences(
    user: Dict[str, Any] = Depends(get_current_user),
    store: SQLiteStore = Depends(get_store),
):
    stored = store.get_preferences(user["id"])
    return UserPreferences(**stored) if stored else UserPreferences()


@router.put("", response_model=UserPreferences)
def update_preferences(
    data: UserPreferences,
    user: Dict[str, Any] = Depends(get_current_user),
    store: SQLiteStore = Depends(get_store),
):
    store.set_preferences(user["id"], data.model_dump())
    return data
