# backend/roamplan/api/routes_hotels.py

from fastapi import APIRouter

from roamplan.models.hotel_models import HotelRankRequest, HotelRankResponse
from roamplan.services.hotel_ranking import rank_hotels

router = APIRouter(prefix="/hotels", tags=["hotels"])


@router.post("/rank", response_model=HotelRankResponse)
def rank(data: HotelRankRequest):
    ranked = rank_hotels(
        data.hotels,
        budget_per_night=data.budget_per_night,
        budget_tier=data.budget_tier,
        limit=data.limit,
    )
    return {"hotels": ranked}
