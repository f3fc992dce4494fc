# backend/roamplan/services/budget_service.py

from collections import defaultdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict

from roamplan.models.budget_models import BudgetBreakdown, DayTotal
from roamplan.models.itinerary_models import ItineraryIn


CENT = Decimal("0.01")

TIER_MULTIPLIERS: Dict[str, Decimal] = {
    "budget": Decimal("0.7"),
    "balanced": Decimal("1.0"),
    "premium": Decimal("1.6"),
}


def _money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_budget(itinerary: ItineraryIn) -> BudgetBreakdown:
    """
    Total an itinerary's activity costs.

    Activity costs are per traveler. `tier_estimates` rescales the total
    from the itinerary's own tier to each of the others.
    """
    travelers = Decimal(itinerary.travelers)
    by_category: Dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    per_day = []
    total = Decimal("0")

    for day in itinerary.days:
        day_total = Decimal("0")
        for activity in day.activities:
            cost = activity.cost * travelers
            day_total += cost
            by_category[activity.category] += cost
        total += day_total
        per_day.append(DayTotal(day_number=day.day_number, date=day.date, total=_money(day_total)))

    own = TIER_MULTIPLIERS[itinerary.budget_tier]
    tier_estimates = {
        tier: _money(total * multiplier / own)
        for tier, multiplier in TIER_MULTIPLIERS.items()
    }

    within_budget = None
    remaining = None
    if itinerary.budget_limit is not None:
        within_budget = total <= itinerary.budget_limit
        remaining = _money(itinerary.budget_limit - total)

    return BudgetBreakdown(
        currency=itinerary.currency,
        travelers=itinerary.travelers,
        budget_tier=itinerary.budget_tier,
        per_day=per_day,
        by_category={k: _money(v) for k, v in sorted(by_category.items())},
        total=_money(total),
        budget_limit=_money(itinerary.budget_limit) if itinerary.budget_limit is not None else None,
        within_budget=within_budget,
        remaining=remaining,
        tier_estimates=tier_estimates,
    )
