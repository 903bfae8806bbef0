"""Integration tests for the read-only monitoring endpoints."""

from datetime import datetime, timedelta, timezone

from app.dependencies import get_monitoring_service, get_now
from app.exceptions.custom import PersistenceError
from app.main import app

T0 = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)
AUTH = {"Authorization": "Bearer test-cron-token"}


class _BrokenMonitoring:
    def checkout_status(self, now):
        raise PersistenceError("no database")

    def snapshot(self, now):
        raise PersistenceError("no database")


async def test_health(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


async def test_checkout_status_counts(client, app_seed):
    app_seed.booking(check_in=T0 - timedelta(days=2), check_out=T0 - timedelta(minutes=30))
    app_seed.booking(check_in=T0 - timedelta(days=2), check_out=T0 + timedelta(hours=1))
    app_seed.booking(check_in=T0 - timedelta(days=2), check_out=T0 + timedelta(hours=5))
    app.dependency_overrides[get_now] = lambda: T0

    resp = await client.get("/api/checkout-status")

    assert resp.status_code == 200
    assert resp.json() == {
        "overdue_count": 1,
        "upcoming_count": 1,
        "today_check_outs": 3,
        "total_critical": 2,
    }


async def test_checkout_status_failure(client):
    app.dependency_overrides[get_monitoring_service] = lambda: _BrokenMonitoring()

    resp = await client.get("/api/checkout-status")

    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to fetch checkout status"}


async def test_monitoring_requires_token(client):
    resp = await client.get("/api/monitoring")
    assert resp.status_code == 401
    assert resp.json() == {"error": "Unauthorized"}


async def test_monitoring_snapshot(client, app_seed):
    booking = app_seed.booking(
        check_in=T0 - timedelta(days=2), check_out=T0 + timedelta(minutes=90)
    )
    app.dependency_overrides[get_now] = lambda: T0

    resp = await client.get("/api/monitoring", headers=AUTH)

    assert resp.status_code == 200
    data = resp.json()
    assert data["critical_count"] == 1
    assert data["overdue_checkouts"] == []
    upcoming = data["upcoming_checkouts"][0]
    assert upcoming["booking_id"] == booking.id
    assert upcoming["guest_name"] == "Ama Mensah"
    assert upcoming["window"]["tier"] == "critical"
    assert upcoming["window"]["display"] == "1h 30m"


async def test_monitoring_database_error(client):
    app.dependency_overrides[get_monitoring_service] = lambda: _BrokenMonitoring()

    resp = await client.get("/api/monitoring", headers=AUTH)

    assert resp.status_code == 500
    data = resp.json()
    assert data["error"] == "Internal server error"
    assert data["details"] == "no database"
