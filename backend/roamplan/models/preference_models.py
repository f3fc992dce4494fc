# backend/roamplan/models/preference_models.py

from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator


class UserPreferences(BaseModel):
    """
    Per-user travel preferences.

    `interests` feed sponsored-content relevance unless the user turns
    `personalized_ads` off.
    """
    budget_tier: Literal["budget", "balanced", "premium"] = "balanced"
    interests: List[str] = Field(default_factory=list)
    energy_level: Literal["low", "medium", "high"] = "medium"
    currency: str = "USD"
    home_city: Optional[str] = None
    personalized_ads: bool = True

    @field_validator("interests")
    @classmethod
    def normalize_interests(cls, interests: List[str]) -> List[str]:
        seen: List[str] = []
        for interest in interests:
            tag = interest.strip().lower()
            if tag and tag not in seen:
                seen.append(tag)
        return seen

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value: str) -> str:
        value = value.strip().upper()
        if len(value) != 3 or not value.isalpha():
            raise ValueError("currency must be a 3-letter ISO code")
        return value
