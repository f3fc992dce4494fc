# backend/roamplan/models/hotel_models.py

from typing import List, Literal, Optional
from pydantic import BaseModel, Field


class HotelIn(BaseModel):
    name: str
    price: Optional[float] = Field(default=None, ge=0)   # per night
    rating: float = Field(default=0.0, ge=0, le=5)
    reviews: int = Field(default=0, ge=0)
    link: Optional[str] = None


class HotelRankRequest(BaseModel):
    hotels: List[HotelIn]
    budget_per_night: float = Field(gt=0)
    budget_tier: Literal["budget", "balanced", "premium"] = "balanced"
    limit: int = Field(default=10, ge=1, le=100)


class RankedHotel(HotelIn):
    value_score: float
    within_budget: bool


class HotelRankResponse(BaseModel):
    hotels: List[RankedHotel]
