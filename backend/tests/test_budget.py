# =============================================================================
# tests/test_budget.py - Budget Calculation Tests
# =============================================================================

from decimal import Decimal

from roamplan.models.itinerary_models import ItineraryIn
from roamplan.services.budget_service import calculate_budget


class TestCalculateBudget:
    """Tests for calculate_budget()."""

    def test_totals_scale_with_travelers(self, sample_itinerary):
        budget = calculate_budget(ItineraryIn(**sample_itinerary))

        assert budget.total == Decimal("179.20")
        assert [d.total for d in budget.per_day] == [Decimal("63.00"), Decimal("116.20")]
        assert budget.currency == "EUR"

    def test_by_category(self, sample_itinerary):
        budget = calculate_budget(ItineraryIn(**sample_itinerary))

        assert budget.by_category == {
            "attraction": Decimal("51.00"),
            "food": Decimal("122.00"),
            "transport": Decimal("6.20"),
        }

    def test_within_limit(self, sample_itinerary):
        budget = calculate_budget(ItineraryIn(**sample_itinerary))

        assert budget.within_budget is True
        assert budget.remaining == Decimal("120.80")

    def test_over_limit(self, sample_itinerary):
        sample_itinerary["budget_limit"] = "100"
        budget = calculate_budget(ItineraryIn(**sample_itinerary))

        assert budget.within_budget is False
        assert budget.remaining == Decimal("-79.20")

    def test_no_limit(self, sample_itinerary):
        sample_itinerary["budget_limit"] = None
        budget = calculate_budget(ItineraryIn(**sample_itinerary))

        assert budget.within_budget is None
        assert budget.remaining is None

    def test_tier_estimates_relative_to_own_tier(self, sample_itinerary):
        budget = calculate_budget(ItineraryIn(**sample_itinerary))
        assert budget.tier_estimates == {
            "budget": Decimal("125.44"),
            "balanced": Decimal("179.20"),
            "premium": Decimal("286.72"),
        }

        sample_itinerary["budget_tier"] = "premium"
        premium = calculate_budget(ItineraryIn(**sample_itinerary))
        assert premium.tier_estimates["premium"] == Decimal("179.20")
        assert premium.tier_estimates["balanced"] == Decimal("112.00")

    def test_empty_itinerary(self, sample_itinerary):
        sample_itinerary["days"] = []
        budget = calculate_budget(ItineraryIn(**sample_itinerary))

        assert budget.total == Decimal("0.00")
        assert budget.per_day == []
        assert budget.by_category == {}

    def test_rounds_half_up(self, sample_itinerary):
        sample_itinerary["travelers"] = 1
        sample_itinerary["days"] = [{
            "day_number": 1,
            "activities": [{"name": "Coffee", "category": "drink", "start_time": "08:00", "cost": "0.125"}],
        }]
        budget = calculate_budget(ItineraryIn(**sample_itinerary))

        assert budget.total == Decimal("0.13")
