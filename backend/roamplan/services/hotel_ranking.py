# backend/roamplan/services/hotel_ranking.py

from typing import List

from roamplan.models.hotel_models import HotelIn, RankedHotel


def hotel_value_score(hotel: HotelIn, budget_per_night: float, budget_tier: str) -> float:
    """
    Value score = 0.6·rating + 0.3·popularity + 0.1·price fit
    Premium travellers get a boost for hotels above budget.
    """
    price = hotel.price or 0

    # Cost factor (closer to budget_per_night = better)
    price_score = 1 - min(price / budget_per_night, 1.5)
    price_score = max(0, price_score)

    value_score = (
        0.6 * (hotel.rating / 5) +
        0.3 * min(hotel.reviews / 1000, 1.0) +
        0.1 * price_score
    )

    if budget_tier == "premium" and price > budget_per_night:
        value_score += 0.2

    return round(value_score, 4)


def rank_hotels(
    hotels: List[HotelIn],
    budget_per_night: float,
    budget_tier: str = "balanced",
    limit: int = 10,
) -> List[RankedHotel]:
    priced: List[RankedHotel] = []
    unpriced: List[RankedHotel] = []

    for h in hotels:
        ranked = RankedHotel(
            **h.model_dump(),
            value_score=hotel_value_score(h, budget_per_night, budget_tier),
            within_budget=bool(h.price) and h.price <= budget_per_night,
        )
        # no price means we can't book it, push to the end
        (priced if h.price else unpriced).append(ranked)

    priced.sort(key=lambda x: (-x.value_score, x.price))
    unpriced.sort(key=lambda x: -x.value_score)

    return (priced + unpriced)[:limit]
