# backend/roamplan/models/itinerary_models.py

from datetime import date as Date
from decimal import Decimal
from typing import List, Literal, Optional

import pytz
from pydantic import BaseModel, Field, field_validator, model_validator


BudgetTier = Literal["budget", "balanced", "premium"]

ActivityCategory = Literal[
    "food", "drink", "museum", "park", "shopping",
    "attraction", "nightlife", "transport", "lodging", "other",
]


class Location(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class Activity(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    category: ActivityCategory = "other"
    start_time: str = Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")   # HH:MM, local to the trip
    duration_min: int = Field(default=60, ge=1, le=1440)
    cost: Decimal = Field(default=Decimal("0"), ge=0)               # per traveler
    location: Optional[Location] = None
    partner_id: Optional[int] = None
    notes: Optional[str] = None


class Day(BaseModel):
    day_number: int = Field(ge=1)
    date: Optional[Date] = None
    activities: List[Activity] = Field(default_factory=list)

    @field_validator("activities")
    @classmethod
    def sort_by_start_time(cls, activities: List[Activity]) -> List[Activity]:
        return sorted(activities, key=lambda a: a.start_time)


class ItineraryIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    destination: str = Field(min_length=1, max_length=200)
    start_date: Date
    end_date: Date
    timezone: str = "UTC"
    budget_tier: BudgetTier = "balanced"
    currency: str = "USD"
    travelers: int = Field(default=1, ge=1, le=50)
    budget_limit: Optional[Decimal] = Field(default=None, ge=0)
    days: List[Day] = Field(default_factory=list)

    @field_validator("timezone")
    @classmethod
    def known_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown timezone: {value}")
        return value

    @field_validator("currency")
    @classmethod
    def iso_currency(cls, value: str) -> str:
        value = value.strip().upper()
        if len(value) != 3 or not value.isalpha():
            raise ValueError("currency must be a 3-letter ISO code")
        return value

    @property
    def trip_length(self) -> int:
        return (self.end_date - self.start_date).days + 1

    @model_validator(mode="after")
    def check_days(self) -> "ItineraryIn":
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")

        seen = set()
        for day in self.days:
            if day.day_number in seen:
                raise ValueError(f"duplicate day_number {day.day_number}")
            seen.add(day.day_number)

            if day.day_number > self.trip_length:
                raise ValueError(
                    f"day_number {day.day_number} is outside a {self.trip_length}-day trip"
                )
            expected = Date.fromordinal(self.start_date.toordinal() + day.day_number - 1)
            if day.date is not None and day.date != expected:
                raise ValueError(f"day {day.day_number} should fall on {expected.isoformat()}")

        self.days = sorted(self.days, key=lambda d: d.day_number)
        return self


class PhotoOut(BaseModel):
    id: int
    storage_key: str
    content_type: str
    size_bytes: int
    url: str
    created_at: str


class ItineraryOut(ItineraryIn):
    id: int
    created_at: str
    updated_at: str
    photos: List[PhotoOut] = Field(default_factory=list)


class ItinerarySummaryOut(BaseModel):
    itinerary_id: int
    summary: str
    source: Literal["llm", "template"]
