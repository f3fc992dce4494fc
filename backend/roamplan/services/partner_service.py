# backend/roamplan/services/partner_service.py

import time
import requests
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from roamplan.core.config_loader import settings
from roamplan.core.errors import ConflictError, NotFoundError, PartnerUnavailableError, ValidationFailedError
from roamplan.core.logger import logger
from roamplan.db.sqlite_store import SQLiteStore
from roamplan.models.partner_models import PartnerIn


AFFILIATE_PARAM = "ref"
AFFILIATE_TAG = "roamplan"


def add_affiliate_tag(url: str) -> str:
    """Append ?ref=roamplan, keeping any existing query parameters."""
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != AFFILIATE_PARAM]
    query.append((AFFILIATE_PARAM, AFFILIATE_TAG))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


class PartnerService:
    def __init__(
        self,
        store: SQLiteStore,
        timeout: Optional[float] = None,
        max_retries: Optional[int] = None,
        backoff: Optional[float] = None,
    ):
        self.store = store
        self.timeout = timeout if timeout is not None else settings.PARTNER_TIMEOUT_SECONDS
        self.max_retries = max(1, max_retries if max_retries is not None else settings.PARTNER_MAX_RETRIES)
        self.backoff = backoff if backoff is not None else settings.PARTNER_BACKOFF_SECONDS

    # -------------------------------------------------------
    # CRUD
    # -------------------------------------------------------
    def create_partner(self, data: PartnerIn) -> Dict[str, Any]:
        if self.store.get_partner_by_name(data.name):
            raise ConflictError(f"Partner '{data.name}' already exists")

        payload = data.model_dump(mode="json")
        partner_id = self.store.create_partner(payload)
        logger.info(f"Partner {partner_id} ({data.name}) created")
        return self.store.get_partner(partner_id)

    def get_partner(self, partner_id: int) -> Dict[str, Any]:
        partner = self.store.get_partner(partner_id)
        if not partner:
            raise NotFoundError("Partner", partner_id)
        return partner

    def delete_partner(self, partner_id: int):
        self.get_partner(partner_id)

        in_use = self.store.count_sponsored_for_partner(partner_id)
        if in_use:
            raise ConflictError(
                f"Partner {partner_id} still has sponsored items",
                details={"sponsored_items": in_use},
            )
        self.store.delete_partner(partner_id)
        logger.info(f"Partner {partner_id} deleted")

    # -------------------------------------------------------
    # OFFERS (retry + cached fallback)
    # -------------------------------------------------------
    def fetch_offers(self, partner_id: int) -> Dict[str, Any]:
        """
        GET {api_base_url}/offers with exponential backoff.

        Connection errors, timeouts, broken streams and 5xx are retried; 4xx,
        malformed bodies and other request failures are not. When every
        attempt fails the last cached offers are returned with `stale: True`.
        """
        partner = self.get_partner(partner_id)
        base_url = partner.get("api_base_url")
        if not base_url:
            raise ValidationFailedError(
                f"Partner {partner_id} has no offers API",
                suggestion="Set api_base_url on the partner",
            )

        url = f"{base_url.rstrip('/')}/offers"
        last_error = "unknown error"

        for attempt in range(self.max_retries):
            try:
                resp = requests.get(url, timeout=self.timeout)
                if resp.status_code >= 500:
                    last_error = f"HTTP {resp.status_code}"
                else:
                    resp.raise_for_status()
                    offers = self._parse_offers(resp.json(), partner)
                    fetched_at = datetime.now(timezone.utc).isoformat()
                    self.store.set_partner_offers(partner_id, offers, fetched_at)
                    logger.info(f"Fetched {len(offers)} offers from partner {partner_id}")
                    return {"partner_id": partner_id, "offers": offers, "stale": False, "fetched_at": fetched_at}
            except requests.exceptions.HTTPError as e:
                last_error = str(e)
                logger.error(f"Partner {partner_id} rejected offers request: {e}")
                break
            except (
                requests.exceptions.ConnectionError,
                requests.exceptions.Timeout,
                requests.exceptions.ChunkedEncodingError,
            ) as e:
                last_error = str(e)
            except ValueError as e:
                last_error = f"malformed response: {e}"
                logger.error(f"Partner {partner_id} returned malformed offers: {e}")
                break
            except requests.exceptions.RequestException as e:
                last_error = f"{type(e).__name__}: {e}"
                logger.error(f"Partner {partner_id} offers request failed: {last_error}")
                break

            if attempt < self.max_retries - 1:
                delay = self.backoff * (2 ** attempt)
                logger.warning(
                    f"Partner {partner_id} offers attempt {attempt + 1}/{self.max_retries} failed "
                    f"({last_error}), retrying in {delay:.2f}s"
                )
                time.sleep(delay)

        return self._cached_offers(partner_id, last_error)

    def _cached_offers(self, partner_id: int, reason: str) -> Dict[str, Any]:
        cached = self.store.get_partner_offers(partner_id)
        if cached is None:
            logger.error(f"Partner {partner_id} unavailable and nothing cached: {reason}")
            raise PartnerUnavailableError(partner_id, reason)

        logger.warning(f"Partner {partner_id} unavailable ({reason}), serving cache from {cached['fetched_at']}")
        return {
            "partner_id": partner_id,
            "offers": cached["offers"],
            "stale": True,
            "fetched_at": cached["fetched_at"],
        }

    @staticmethod
    def _parse_offers(body: Any, partner: Dict[str, Any]) -> List[Dict[str, Any]]:
        raw = body.get("offers", []) if isinstance(body, dict) else body
        if not isinstance(raw, list):
            raise ValueError("offers must be a list")

        offers = []
        for o in raw:
            if not isinstance(o, dict):
                continue
            offer = dict(o)
            offer["link"] = add_affiliate_tag(offer.get("link") or partner["affiliate_url"])
            offer["partner_id"] = partner["id"]
            offers.append(offer)
        return offers
