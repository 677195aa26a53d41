"""Tests for the cinecdc API endpoints."""

import pytest

from tests.conftest import YESTERDAY

BOOKING = {
    "booking_id": "B1",
    "customer_id": "C1",
    "movie_id": "M1",
    "booking_date": YESTERDAY.isoformat(),
    "ticket_count": 2,
    "ticket_price": "150.00",
}


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, unauthed_client):
        resp = await unauthed_client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "ok"
        assert data["stages"] == ["ingest", "enrich", "aggregate"]


class TestAuth:
    @pytest.mark.asyncio
    async def test_no_auth_rejected(self, unauthed_client):
        resp = await unauthed_client.get("/api/v1/stages")
        assert resp.status_code == 401
        assert resp.headers["www-authenticate"] == "Bearer"

    @pytest.mark.asyncio
    async def test_bad_auth_rejected(self, app):
        from httpx import AsyncClient, ASGITransport
        transport = ASGITransport(app=app)
        async with AsyncClient(
            transport=transport,
            base_url="http://test",
            headers={"Authorization": "Bearer wrong_key"},
        ) as c:
            resp = await c.get("/api/v1/stages")
            assert resp.status_code == 401
            assert resp.json()["detail"] == "Invalid API key"
            assert resp.headers["www-authenticate"] == "Bearer"


class TestIngestion:
    @pytest.mark.asyncio
    async def test_create_booking(self, client):
        resp = await client.post("/api/v1/bookings", json=BOOKING)
        assert resp.status_code == 201
        data = resp.json()
        assert data["seq"] == 1
        assert data["action"] == "INSERT"
        assert data["status"] == "BOOKED"
        assert float(data["total_amount"]) == 300.0

    @pytest.mark.asyncio
    async def test_create_duplicate_conflicts(self, client):
        await client.post("/api/v1/bookings", json=BOOKING)
        resp = await client.post("/api/v1/bookings", json=BOOKING)
        assert resp.status_code == 409

    @pytest.mark.asyncio
    async def test_create_rejects_bad_status(self, client):
        resp = await client.post("/api/v1/bookings", json={**BOOKING, "status": "PENDING"})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_update_booking(self, client):
        await client.post("/api/v1/bookings", json=BOOKING)
        resp = await client.patch("/api/v1/bookings/B1", json={"status": "CANCELLED"})
        assert resp.status_code == 200
        data = resp.json()
        assert data["action"] == "UPDATE"
        assert data["is_update"] is True
        assert data["status"] == "CANCELLED"

    @pytest.mark.asyncio
    async def test_update_rejects_null_status(self, client):
        await client.post("/api/v1/bookings", json=BOOKING)
        resp = await client.patch("/api/v1/bookings/B1", json={"status": None})
        assert resp.status_code == 422

        resp = await client.get("/api/v1/bookings/B1/changes")
        assert [c["action"] for c in resp.json()["changes"]] == ["INSERT"]

    @pytest.mark.asyncio
    async def test_ticket_count_out_of_column_range(self, client):
        resp = await client.post("/api/v1/bookings", json={**BOOKING, "ticket_count": 2**64})
        assert resp.status_code == 422

        await client.post("/api/v1/bookings", json=BOOKING)
        resp = await client.patch("/api/v1/bookings/B1", json={"ticket_count": -(2**40)})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_negative_ticket_count_is_captured(self, client):
        resp = await client.post("/api/v1/bookings", json={**BOOKING, "ticket_count": -1})
        assert resp.status_code == 201
        assert resp.json()["ticket_count"] == -1

    @pytest.mark.asyncio
    async def test_update_unknown(self, client):
        resp = await client.patch("/api/v1/bookings/nope", json={"ticket_count": 1})
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_delete_booking(self, client):
        await client.post("/api/v1/bookings", json=BOOKING)
        resp = await client.delete("/api/v1/bookings/B1")
        assert resp.status_code == 200
        assert resp.json()["action"] == "DELETE"
        assert resp.json()["movie_id"] == "M1"

        resp = await client.delete("/api/v1/bookings/B1")
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_booking_change_history(self, client):
        await client.post("/api/v1/bookings", json=BOOKING)
        await client.patch("/api/v1/bookings/B1", json={"ticket_count": 3})
        resp = await client.get("/api/v1/bookings/B1/changes")
        assert [c["action"] for c in resp.json()["changes"]] == ["INSERT", "UPDATE"]


class TestChangeFeeds:
    @pytest.mark.asyncio
    async def test_drain_changes(self, client):
        for i in range(3):
            await client.post("/api/v1/bookings", json={**BOOKING, "booking_id": f"B{i}"})

        resp = await client.get("/api/v1/changes", params={"cursor": 0, "limit": 2})
        data = resp.json()
        assert [c["seq"] for c in data["changes"]] == [1, 2]
        assert data["next_cursor"] == 2

        resp = await client.get("/api/v1/changes", params={"cursor": data["next_cursor"]})
        assert [c["seq"] for c in resp.json()["changes"]] == [3]

    @pytest.mark.asyncio
    async def test_scan_events_after_ingest(self, client):
        await client.post("/api/v1/bookings", json=BOOKING)
        resp = await client.get("/api/v1/events")
        assert resp.json()["total"] == 0

        await client.post("/api/v1/stages/ingest/run")
        resp = await client.get("/api/v1/events")
        events = resp.json()["events"]
        assert len(events) == 1
        assert events[0]["change_action"] == "INSERT"
        assert events[0]["source_seq"] == 1


class TestQueries:
    @pytest.mark.asyncio
    async def test_enriched_booking_and_insights(self, client):
        await client.post("/api/v1/bookings", json=BOOKING)
        resp = await client.post("/api/v1/stages/ingest/run")
        assert [r["status"] for r in resp.json()["runs"]] == ["succeeded"] * 3

        resp = await client.get("/api/v1/bookings/B1")
        assert resp.status_code == 200
        data = resp.json()
        assert data["booking_size_category"] == "GROUP"
        assert data["price_category"] == "STANDARD"
        assert data["is_valid_booking"] is True

        resp = await client.get("/api/v1/movies/M1/bookings")
        assert resp.json()["total"] == 1

        resp = await client.get("/api/v1/movies/M1/insights")
        assert resp.status_code == 200
        assert float(resp.json()["total_active_revenue"]) == 300.0

        resp = await client.get("/api/v1/insights")
        assert [i["movie_id"] for i in resp.json()["insights"]] == ["M1"]

    @pytest.mark.asyncio
    async def test_not_yet_enriched(self, client):
        await client.post("/api/v1/bookings", json=BOOKING)
        resp = await client.get("/api/v1/bookings/B1")
        assert resp.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_movie(self, client):
        resp = await client.get("/api/v1/movies/nope/insights")
        assert resp.status_code == 404


class TestStages:
    @pytest.mark.asyncio
    async def test_list_stages(self, client):
        resp = await client.get("/api/v1/stages")
        data = resp.json()
        assert data["total"] == 3
        ingest, enrich, aggregate = data["stages"]
        assert ingest["trigger"] == "interval"
        assert ingest["interval_seconds"] == 60
        assert enrich["trigger"] == "downstream"
        assert enrich["upstream"] == "ingest"
        assert aggregate["upstream"] == "enrich"

    @pytest.mark.asyncio
    async def test_unknown_stage(self, client):
        assert (await client.get("/api/v1/stages/nope")).status_code == 404
        assert (await client.post("/api/v1/stages/nope/pause")).status_code == 404

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, client):
        resp = await client.post("/api/v1/stages/enrich/pause")
        assert resp.json()["paused"] is True
        resp = await client.post("/api/v1/stages/enrich/resume")
        assert resp.json()["paused"] is False

    @pytest.mark.asyncio
    async def test_set_interval(self, client):
        resp = await client.put("/api/v1/stages/ingest/interval", json={"seconds": 30})
        assert resp.status_code == 200
        assert resp.json()["interval_seconds"] == 30

        resp = await client.put("/api/v1/stages/ingest/interval", json={"seconds": 0})
        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_run_history(self, client):
        await client.post("/api/v1/bookings", json=BOOKING)
        await client.post("/api/v1/stages/ingest/run")

        resp = await client.get("/api/v1/stages/ingest/runs")
        runs = resp.json()["runs"]
        assert len(runs) == 1
        assert runs[0]["status"] == "succeeded"
        assert runs[0]["trigger"] == "manual"
        assert runs[0]["rows_out"] == 1
        assert runs[0]["cursor_before"] == 0
        assert runs[0]["cursor_after"] == 1

        resp = await client.get("/api/v1/stages/enrich")
        assert resp.json()["last_outcome"] == "succeeded"
        assert resp.json()["last_rows_out"] == 1

    @pytest.mark.asyncio
    async def test_no_failures(self, client):
        resp = await client.get("/api/v1/stages/failures")
        assert resp.json()["total"] == 0
