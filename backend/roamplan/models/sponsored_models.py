# backend/roamplan/models/sponsored_models.py

from datetime import date as Date
from typing import List, Optional
from pydantic import BaseModel, Field, field_validator


class SponsoredItemIn(BaseModel):
    partner_id: int
    title: str = Field(min_length=1, max_length=200)
    destination: str = Field(min_length=1, max_length=200)
    categories: List[str] = Field(default_factory=list)
    bid_cents: int = Field(default=0, ge=0)
    rating: float = Field(default=0.0, ge=0, le=5)
    # Checked by the service so the client gets DISCLOSURE_MISSING
    disclosure: Optional[str] = None
    starts_at: Optional[Date] = None
    ends_at: Optional[Date] = None
    active: bool = True

    @field_validator("categories")
    @classmethod
    def lower_categories(cls, categories: List[str]) -> List[str]:
        return [c.strip().lower() for c in categories if c.strip()]


class SponsoredItemOut(BaseModel):
    id: int
    partner_id: int
    title: str
    destination: str
    categories: List[str]
    bid_cents: int
    rating: float
    disclosure: str
    starts_at: Optional[str] = None
    ends_at: Optional[str] = None
    active: bool
    created_at: str


class RankedSponsoredItem(BaseModel):
    id: int
    partner_id: int
    title: str
    destination: str
    categories: List[str]
    disclosure: str
    score: float
    sponsored: bool = True


class SponsoredListOut(BaseModel):
    destination: str
    items: List[RankedSponsoredItem]
