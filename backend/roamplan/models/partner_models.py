# backend/roamplan/models/partner_models.py

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, HttpUrl


class PartnerIn(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    kind: Literal["hotel", "activity", "transport", "restaurant"]
    affiliate_url: HttpUrl
    api_base_url: Optional[HttpUrl] = None
    commission_rate: float = Field(default=0.0, ge=0, le=1)
    active: bool = True


class PartnerOut(BaseModel):
    id: int
    name: str
    kind: str
    affiliate_url: str
    api_base_url: Optional[str] = None
    commission_rate: float
    active: bool


class PartnerOffersOut(BaseModel):
    partner_id: int
    offers: List[Dict[str, Any]]
    stale: bool
    fetched_at: Optional[str] = None
