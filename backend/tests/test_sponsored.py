# =============================================================================
# tests/test_sponsored.py - Sponsored Content Ranking Tests
# =============================================================================

from datetime import date, timedelta
from functools import cmp_to_key

import pytest

from roamplan.services.sponsored_service import (
    RankingContext,
    blend_with_organic,
    compare_sponsored,
    freshness,
    rank_sponsored,
    relevance,
    score_sponsored_item,
)

TODAY = date(2026, 6, 1)


def make_item(item_id=1, **overrides):
    item = {
        "id": item_id,
        "partner_id": 1,
        "title": f"Offer {item_id}",
        "destination": "Lisbon",
        "categories": ["food", "nightlife"],
        "bid_cents": 250,
        "rating": 4.5,
        "disclosure": "Sponsored by Harbor Hotels",
        "starts_at": None,
        "ends_at": None,
        "active": True,
        "partner_active": True,
        "created_at": TODAY.isoformat() + "T09:00:00+00:00",
    }
    item.update(overrides)
    return item


@pytest.fixture
def ctx():
    return RankingContext(destination="lisbon", interests=["food"], today=TODAY)


class TestScoring:
    def test_absolute_score(self, ctx):
        # relevance 0.75, rating 0.9, bid 0.5, fresh 1.0
        assert score_sponsored_item(make_item(), ctx) == pytest.approx(76.25)

    def test_score_bounded(self, ctx):
        best = make_item(categories=["food"], rating=5, bid_cents=10_000)
        assert score_sponsored_item(best, ctx) == pytest.approx(100.0)

    def test_destination_match_ignores_accents_and_case(self):
        ctx = RankingContext(destination="da lat", today=TODAY)
        assert relevance(make_item(destination="Đà Lạt", categories=[]), ctx) == 0.5

    def test_non_personalized_uses_destination_only(self):
        ctx = RankingContext(destination="Lisbon", interests=["food"], personalized=False, today=TODAY)

        assert relevance(make_item(), ctx) == 1.0
        assert relevance(make_item(destination="Porto"), ctx) == 0.0
        assert score_sponsored_item(make_item(), ctx) == pytest.approx(87.5)

    def test_freshness_decays(self):
        assert freshness(make_item(), TODAY) == 1.0
        old = make_item(created_at=(TODAY - timedelta(days=48)).isoformat())
        assert freshness(old, TODAY) == pytest.approx(1 - 41 / 83)
        ancient = make_item(created_at=(TODAY - timedelta(days=120)).isoformat())
        assert freshness(ancient, TODAY) == 0.0


class TestComparator:
    def test_comparator_orders_by_score_desc(self, ctx):
        strong = make_item(1, bid_cents=500)
        weak = make_item(2, bid_cents=0)

        assert compare_sponsored(strong, weak, ctx) < 0
        assert compare_sponsored(weak, strong, ctx) > 0

    def test_comparator_matches_absolute_score(self, ctx):
        a, b = make_item(1, bid_cents=100), make_item(2, bid_cents=400)
        diff = score_sponsored_item(b, ctx) - score_sponsored_item(a, ctx)

        assert compare_sponsored(a, b, ctx) == pytest.approx(diff)

    def test_ties_break_by_id(self, ctx):
        items = [make_item(3), make_item(1), make_item(2)]
        items.sort(key=cmp_to_key(lambda a, b: compare_sponsored(a, b, ctx)))

        assert [i["id"] for i in items] == [1, 2, 3]


class TestRankSponsored:
    def test_threshold_excludes_irrelevant_even_with_high_bid(self, ctx):
        items = [
            make_item(1, destination="Porto", categories=[], bid_cents=50_000),
            # interest overlap alone: 0.5 * 1/2 = 0.25 < 0.3
            make_item(2, destination="Porto", categories=["food", "museum"], bid_cents=50_000),
            make_item(3, bid_cents=10),
        ]

        assert [i["id"] for i in rank_sponsored(items, ctx)] == [3]

    def test_ineligible_items_excluded(self, ctx):
        items = [
            make_item(1, active=False),
            make_item(2, partner_active=False),
            make_item(3, starts_at=(TODAY + timedelta(days=1)).isoformat()),
            make_item(4, ends_at=(TODAY - timedelta(days=1)).isoformat()),
            make_item(5, starts_at=TODAY.isoformat(), ends_at=TODAY.isoformat()),
        ]

        assert [i["id"] for i in rank_sponsored(items, ctx)] == [5]

    def test_results_carry_disclosure(self, ctx):
        ranked = rank_sponsored([make_item(1, bid_cents=0), make_item(2, bid_cents=500)], ctx, limit=1)

        assert len(ranked) == 1
        assert ranked[0]["id"] == 2
        assert ranked[0]["sponsored"] is True
        assert ranked[0]["disclosure"] == "Sponsored by Harbor Hotels"
        assert 0 <= ranked[0]["score"] <= 100


class TestBlend:
    def test_fixed_slots(self):
        organic = [{"id": c} for c in "abcde"]
        sponsored = [{"id": "s1", "sponsored": True}, {"id": "s2", "sponsored": True}, {"id": "s3", "sponsored": True}]

        blended = blend_with_organic(organic, sponsored)

        assert [e["id"] for e in blended] == ["a", "s1", "b", "c", "s2", "d", "e"]
        assert [e["sponsored"] for e in blended] == [False, True, False, False, True, False, False]

    def test_short_organic_list(self):
        blended = blend_with_organic([{"id": "a"}], [{"id": "s1"}, {"id": "s2"}])
        assert [e["id"] for e in blended] == ["a", "s1", "s2"]

    def test_no_sponsored(self):
        assert blend_with_organic([{"id": "a"}], []) == [{"id": "a", "sponsored": False}]


class TestSponsoredApi:
    def _item(self, partner_id, **overrides):
        body = {
            "partner_id": partner_id,
            "title": "Rooftop bar tour",
            "destination": "Lisbon",
            "categories": ["Nightlife"],
            "bid_cents": 300,
            "rating": 4.0,
            "disclosure": "Sponsored by Harbor Hotels",
        }
        body.update(overrides)
        return body

    def test_create_requires_admin(self, client, user_headers, partner):
        resp = client.post("/api/v1/sponsored", json=self._item(partner["id"]), headers=user_headers)
        assert resp.status_code == 403

    def test_disclosure_required(self, client, admin_headers, partner):
        for disclosure in (None, "   "):
            resp = client.post(
                "/api/v1/sponsored",
                json=self._item(partner["id"], disclosure=disclosure),
                headers=admin_headers,
            )
            assert resp.status_code == 422
            assert resp.json()["code"] == "DISCLOSURE_MISSING"

    def test_unknown_partner(self, client, admin_headers):
        resp = client.post("/api/v1/sponsored", json=self._item(999), headers=admin_headers)
        assert resp.status_code == 404

    def test_create_and_list(self, client, admin_headers, partner):
        created = client.post("/api/v1/sponsored", json=self._item(partner["id"]), headers=admin_headers)
        assert created.status_code == 201
        assert created.json()["categories"] == ["nightlife"]

        resp = client.get("/api/v1/sponsored", params={"destination": "lisbon"})
        assert resp.status_code == 200
        items = resp.json()["items"]
        assert [i["id"] for i in items] == [created.json()["id"]]
        assert items[0]["disclosure"] == "Sponsored by Harbor Hotels"

        assert client.get("/api/v1/sponsored", params={"destination": "Tokyo"}).json()["items"] == []

    def test_preferences_personalize_ranking(self, client, admin_headers, user_headers, partner):
        food = client.post(
            "/api/v1/sponsored",
            json=self._item(partner["id"], title="Food walk", categories=["food"], bid_cents=100),
            headers=admin_headers,
        ).json()
        bar = client.post(
            "/api/v1/sponsored",
            json=self._item(partner["id"], title="Bar crawl", categories=["nightlife"], bid_cents=200),
            headers=admin_headers,
        ).json()

        anonymous = client.get("/api/v1/sponsored", params={"destination": "Lisbon"}).json()["items"]
        assert [i["id"] for i in anonymous] == [bar["id"], food["id"]]

        client.put("/api/v1/users/me/preferences", json={"interests": ["food"]}, headers=user_headers)
        personal = client.get(
            "/api/v1/sponsored", params={"destination": "Lisbon"}, headers=user_headers
        ).json()["items"]
        assert [i["id"] for i in personal] == [food["id"], bar["id"]]

    def test_blend_endpoint(self, client, admin_headers, partner):
        client.post("/api/v1/sponsored", json=self._item(partner["id"]), headers=admin_headers)

        resp = client.post("/api/v1/sponsored/blend", json={
            "destination": "Lisbon",
            "organic": [{"name": "Castle"}, {"name": "Museum"}],
        })

        items = resp.json()["items"]
        assert [i.get("sponsored") for i in items] == [False, True, False]
        assert items[1]["disclosure"] == "Sponsored by Harbor Hotels"

    def test_delete(self, client, admin_headers, partner):
        item_id = client.post("/api/v1/sponsored", json=self._item(partner["id"]), headers=admin_headers).json()["id"]

        assert client.delete(f"/api/v1/sponsored/{item_id}", headers=admin_headers).status_code == 204
        assert client.delete(f"/api/v1/sponsored/{item_id}", headers=admin_headers).status_code == 404
