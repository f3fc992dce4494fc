# backend/roamplan/services/sponsored_service.py

from datetime import date, datetime, timezone
from functools import cmp_to_key
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from roamplan.core.errors import DisclosureMissingError, NotFoundError, ValidationFailedError
from roamplan.core.logger import logger
from roamplan.db.sqlite_store import SQLiteStore
from roamplan.models.sponsored_models import SponsoredItemIn
from roamplan.utils.text_utils import normalize_text


MIN_RELEVANCE = 0.3
MAX_BID_CENTS = 500

# Freshness: full credit for a week, linear decay to zero at 90 days
FRESH_DAYS = 7
STALE_DAYS = 90

W_RELEVANCE = 0.45
W_RATING = 0.25
W_BID = 0.20
W_FRESHNESS = 0.10

DEFAULT_SLOTS = (1, 4)


def _today() -> date:
    return datetime.now(timezone.utc).date()


class RankingContext(BaseModel):
    destination: str
    interests: List[str] = Field(default_factory=list)
    personalized: bool = True
    today: date = Field(default_factory=_today)


# ---------------------------------------------------------------------------
# SCORE COMPONENTS
# ---------------------------------------------------------------------------
def relevance(item: Dict[str, Any], ctx: RankingContext) -> float:
    """
    0.5 for a destination match plus up to 0.5 for interest overlap.
    Without personalization only the destination counts, scaled to 0..1.
    """
    dest_match = normalize_text(item.get("destination", "")) == normalize_text(ctx.destination)

    if not ctx.personalized:
        return 1.0 if dest_match else 0.0

    score = 0.5 if dest_match else 0.0
    categories = set(item.get("categories") or [])
    if categories and ctx.interests:
        overlap = categories & set(ctx.interests)
        score += 0.5 * len(overlap) / len(categories)
    return score


def freshness(item: Dict[str, Any], today: date) -> float:
    created = item.get("created_at")
    if not created:
        return 0.0
    created_day = datetime.fromisoformat(str(created)).date()
    age = (today - created_day).days

    if age <= FRESH_DAYS:
        return 1.0
    if age >= STALE_DAYS:
        return 0.0
    return 1 - (age - FRESH_DAYS) / (STALE_DAYS - FRESH_DAYS)


def is_eligible(item: Dict[str, Any], today: date) -> bool:
    if not item.get("active", True) or not item.get("partner_active", True):
        return False
    starts_at = item.get("starts_at")
    ends_at = item.get("ends_at")
    if starts_at and date.fromisoformat(str(starts_at)) > today:
        return False
    if ends_at and date.fromisoformat(str(ends_at)) < today:
        return False
    return True


# ---------------------------------------------------------------------------
# SCORING (absolute + comparator views of the same function)
# ---------------------------------------------------------------------------
def score_sponsored_item(item: Dict[str, Any], ctx: RankingContext) -> float:
    """
    Score(i) = 100 · (0.45·Relevance + 0.25·Rating/5 + 0.20·Bid + 0.10·Freshness)

    Returns an absolute score in 0..100.
    """
    rating_norm = min(max(item.get("rating") or 0, 0), 5) / 5
    bid_norm = min((item.get("bid_cents") or 0) / MAX_BID_CENTS, 1.0)

    score = (
        W_RELEVANCE * relevance(item, ctx) +
        W_RATING * rating_norm +
        W_BID * bid_norm +
        W_FRESHNESS * freshness(item, ctx.today)
    )
    return round(100 * score, 2)


def compare_sponsored(a: Dict[str, Any], b: Dict[str, Any], ctx: RankingContext) -> float:
    """
    Sort comparator: negative when `a` ranks before `b`.
    Equal scores fall back to the lower id first.
    """
    diff = score_sponsored_item(b, ctx) - score_sponsored_item(a, ctx)
    if diff:
        return diff
    return a["id"] - b["id"]


def rank_sponsored(
    items: Sequence[Dict[str, Any]],
    ctx: RankingContext,
    limit: int = 5,
) -> List[Dict[str, Any]]:
    candidates = []
    for item in items:
        if not is_eligible(item, ctx.today):
            continue
        rel = relevance(item, ctx)
        if rel < MIN_RELEVANCE:
            logger.debug(
                f"Sponsored item {item['id']} excluded: relevance {rel:.2f} < {MIN_RELEVANCE}"
            )
            continue
        candidates.append(item)

    candidates.sort(key=cmp_to_key(lambda a, b: compare_sponsored(a, b, ctx)))

    return [
        {
            "id": item["id"],
            "partner_id": item["partner_id"],
            "title": item["title"],
            "destination": item["destination"],
            "categories": item.get("categories", []),
            "disclosure": item["disclosure"],
            "score": score_sponsored_item(item, ctx),
            "sponsored": True,
        }
        for item in candidates[:limit]
    ]


def blend_with_organic(
    organic: Sequence[Dict[str, Any]],
    sponsored: Sequence[Dict[str, Any]],
    slots: Sequence[int] = DEFAULT_SLOTS,
) -> List[Dict[str, Any]]:
    """
    Insert sponsored entries at fixed 0-based positions of an organic list.
    Organic order is preserved; extra sponsored entries are dropped.
    """
    result = [{**entry, "sponsored": False} for entry in organic]

    for slot, entry in zip(sorted(slots), sponsored):
        result.insert(min(slot, len(result)), entry)

    return result


# ---------------------------------------------------------------------------
# SERVICE
# ---------------------------------------------------------------------------
def require_disclosure(disclosure: Optional[str]) -> str:
    if not disclosure or not disclosure.strip():
        raise DisclosureMissingError()
    return disclosure.strip()


def create_sponsored_item(store: SQLiteStore, data: SponsoredItemIn) -> Dict[str, Any]:
    disclosure = require_disclosure(data.disclosure)

    if not store.get_partner(data.partner_id):
        raise NotFoundError("Partner", data.partner_id)
    if data.starts_at and data.ends_at and data.ends_at < data.starts_at:
        raise ValidationFailedError("ends_at must not be before starts_at")

    payload = data.model_dump()
    payload["disclosure"] = disclosure
    item_id = store.create_sponsored_item(payload)
    logger.info(f"Sponsored item {item_id} created for partner {data.partner_id}")
    return store.get_sponsored_item(item_id)


def context_for(destination: str, preferences: Optional[Dict[str, Any]]) -> RankingContext:
    preferences = preferences or {}
    personalized = preferences.get("personalized_ads", True)
    return RankingContext(
        destination=destination,
        interests=preferences.get("interests", []) if personalized else [],
        personalized=personalized,
    )


def sponsored_for_destination(
    store: SQLiteStore,
    destination: str,
    preferences: Optional[Dict[str, Any]] = None,
    limit: int = 5,
) -> List[Dict[str, Any]]:
    ctx = context_for(destination, preferences)
    return rank_sponsored(store.list_sponsored_items(), ctx, limit=limit)
