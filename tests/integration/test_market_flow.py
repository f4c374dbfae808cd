# tests/integration/test_market_flow.py
"""Integration tests for pm_market and the admin market lifecycle."""

from decimal import Decimal

import pytest

pytestmark = [pytest.mark.integration, pytest.mark.asyncio(loop_scope="session")]


class TestAdminGuard:
    async def test_non_admin_cannot_create(self, client, fresh_user):
        headers = fresh_user()
        await client.post("/api/v1/account", headers=headers)
        resp = await client.post("/api/v1/admin/markets", headers=headers, json={"question": "Q?"})
        assert resp.status_code == 403


class TestListMarkets:
    async def test_new_market_listed_first(self, client, market_id):
        resp = await client.get("/api/v1/markets?limit=1")
        assert resp.status_code == 200
        assert resp.json()["data"]["items"][0]["id"] == market_id

    async def test_cursor_pagination(self, client, market_id):
        first = (await client.get("/api/v1/markets?status=ALL&limit=1")).json()["data"]
        if first["has_more"]:
            cursor = first["next_cursor"]
            second = (
                await client.get(f"/api/v1/markets?status=ALL&limit=1&cursor={cursor}")
            ).json()["data"]
            assert second["items"][0]["id"] != first["items"][0]["id"]

    async def test_groups(self, client, market_id):
        data = (await client.get("/api/v1/markets/groups")).json()["data"]
        topics = {g["topic"] for g in data["groups"]}
        assert "it" in topics


class TestMarketDetail:
    async def test_fresh_market_at_even_odds(self, client, market_id):
        data = (await client.get(f"/api/v1/markets/{market_id}")).json()["data"]
        assert Decimal(data["yes_price"]) == Decimal("0.5")
        assert data["pool_yes"] == data["pool_no"]

    async def test_not_found(self, client):
        resp = await client.get("/api/v1/markets/mkt_doesnotexist")
        assert resp.status_code == 404


class TestLifecycle:
    async def test_resolve_then_closed_listing(self, client, admin_headers, market_id):
        resp = await client.post(
            f"/api/v1/admin/markets/{market_id}/resolve",
            headers=admin_headers,
            json={"outcome": "NO"},
        )
        assert resp.status_code == 200

        closed = (await client.get("/api/v1/markets?status=CLOSED&limit=1")).json()["data"]
        assert closed["items"][0]["id"] == market_id
        assert Decimal(closed["items"][0]["no_price"]) == 1

    async def test_void_deletes(self, client, admin_headers, market_id):
        resp = await client.post(f"/api/v1/admin/markets/{market_id}/void", headers=admin_headers)
        assert resp.status_code == 200
        assert (await client.get(f"/api/v1/markets/{market_id}")).status_code == 404

    async def test_invariant_audit_clean(self, client, admin_headers):
        data = (await client.get("/api/v1/admin/invariants", headers=admin_headers)).json()["data"]
        assert data["ok"] is True
