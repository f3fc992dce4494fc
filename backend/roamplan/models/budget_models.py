# backend/roamplan/models/budget_models.py

from datetime import date as Date
from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel


class DayTotal(BaseModel):
    day_number: int
    date: Optional[Date] = None
    total: Decimal


class BudgetBreakdown(BaseModel):
    currency: str
    travelers: int
    budget_tier: str
    per_day: List[DayTotal]
    by_category: Dict[str, Decimal]
    total: Decimal
    budget_limit: Optional[Decimal] = None
    within_budget: Optional[bool] = None
    remaining: Optional[Decimal] = None
    tier_estimates: Dict[str, Decimal]
