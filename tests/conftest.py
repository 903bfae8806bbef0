from datetime import datetime, timedelta, timezone

import httpx
import pytest
from httpx import ASGITransport
from sqlalchemy import select

from app.db import create_db_engine, create_session_factory, run_migrations
from app.models import Block, Booking, BookingStatus, Room, User, UserRole

T0 = datetime(2026, 3, 2, 10, 0, tzinfo=timezone.utc)


class Seeder:
    """Inserts users, rooms and bookings into a test database."""

    def __init__(self, session_factory):
        self._session_factory = session_factory
        self._rooms = 0

    def _add(self, obj):
        with self._session_factory() as db:
            db.add(obj)
            db.commit()
        return obj

    def guest(self, first="Ama", last="Mensah", email="ama@example.com", phone="+233241234567"):
        return self._add(User(
            first_name=first, last_name=last, email=email, phone=phone, role=UserRole.TENANT,
        ))

    def staff(self, first="Kofi", last="Owusu", email=None, phone="+233200000001", role=UserRole.STAFF):
        return self._add(User(
            first_name=first, last_name=last, email=email, phone=phone, role=role,
        ))

    def room(self, number=None, block_name="A"):
        self._rooms += 1
        with self._session_factory() as db:
            block = db.execute(select(Block).filter_by(name=block_name)).scalar_one_or_none()
            if block is None:
                block = Block(name=block_name)
                db.add(block)
            room = Room(number=number or str(100 + self._rooms), block=block)
            db.add(room)
            db.commit()
            return room

    def booking(
        self,
        guest=None,
        check_in=T0,
        check_out=T0 + timedelta(hours=96),
        status=BookingStatus.CHECKED_IN,
        room=None,
    ):
        guest = guest or self.guest()
        room = room or self.room()
        return self._add(Booking(
            user_id=guest.id,
            room_id=room.id,
            check_in=check_in,
            check_out=check_out,
            status=status,
        ))


@pytest.fixture
def session_factory():
    engine = create_db_engine("sqlite://")
    run_migrations(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def seed(session_factory):
    return Seeder(session_factory)


@pytest.fixture
def mock_env(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "sqlite://")
    monkeypatch.setenv("CRON_SECRET_TOKEN", "test-cron-token")
    monkeypatch.setenv("MNOTIFY_API_KEY", "test-mnotify-key")
    monkeypatch.setenv("MNOTIFY_SENDER_ID", "Platinum")
    monkeypatch.setenv("RESEND_API_KEY", "test-resend-key")
    monkeypatch.setenv("TIMEZONE", "UTC")
    monkeypatch.setenv("SEND_DELAY_SECONDS", "0")


@pytest.fixture
async def client(mock_env):
    from app.main import app, lifespan

    async with lifespan(app):
        async with httpx.AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as c:
            yield c
    app.dependency_overrides.clear()


@pytest.fixture
def app_seed(client):
    """Seeder bound to the database the running app uses."""
    from app.main import app

    return Seeder(app.state.session_factory)
