"""
Shared fixtures: an in-memory database per test, row factories, mocked
Celery email tasks and an HTTP client bound to the app.
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from citypulse.database import get_db
from citypulse.main import app
from citypulse.models import (
    Base,
    Booking,
    BookingStatus,
    Coupon,
    Event,
    EventCategory,
    EventStatus,
    EventType,
    Organizer,
    PaymentStatus,
    TicketType,
    User,
)
from citypulse.utils.auth import create_access_token
from citypulse.utils.clock import utcnow

EMAIL_TASKS = (
    "send_ticket_email_task",
    "send_organizer_sale_email_task",
    "send_organizer_cancellation_email_task",
)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture(autouse=True)
def queued_emails():
    """Replace the email tasks so nothing reaches a broker."""
    patchers = {
        name: patch(f"citypulse.tasks.notification_tasks.{name}") for name in EMAIL_TASKS
    }
    mocks = {name: patcher.start() for name, patcher in patchers.items()}
    yield mocks
    for patcher in patchers.values():
        patcher.stop()


@pytest.fixture
def make_user(session):
    counter = {"n": 0}

    async def factory(name="Alice", email=None, password=None) -> User:
        counter["n"] += 1
        user = User(name=name, email=email or f"user{counter['n']}@example.com", password_hash="")
        user.set_password(password or "secret123")
        session.add(user)
        await session.commit()
        return user

    return factory


@pytest.fixture
def make_organizer(session):
    counter = {"n": 0}

    async def factory(name="Olivia", email=None, organization_name="Pulse Events") -> Organizer:
        counter["n"] += 1
        organizer = Organizer(
            name=name,
            email=email or f"organizer{counter['n']}@example.com",
            organization_name=organization_name,
            password_hash="",
        )
        organizer.set_password("secret123")
        session.add(organizer)
        await session.commit()
        return organizer

    return factory


@pytest.fixture
def make_event(session):
    async def factory(organizer: Organizer, **overrides) -> Event:
        start = overrides.pop("start_date", utcnow() + timedelta(days=7))
        values = dict(
            title="Jazz Night",
            description="Live jazz in the park",
            category=EventCategory.MUSIC,
            event_type=EventType.OFFLINE,
            start_date=start,
            end_date=start + timedelta(hours=3),
            venue_city="Pune",
            venue_address="Central Park",
            banner="https://img.example.com/jazz.png",
            ticket_type=TicketType.PAID,
            price=Decimal("50.00"),
            max_attendees=10,
            sold_tickets=0,
            status=EventStatus.PUBLISHED,
        )
        values.update(overrides)
        event = Event(organizer_id=organizer.id, **values)
        session.add(event)
        await session.commit()
        return event

    return factory


@pytest.fixture
def make_coupon(session):
    async def factory(organizer: Organizer, code="SAVE10", **overrides) -> Coupon:
        values = dict(
            discount_percentage=Decimal("10"),
            expiry_date=utcnow() + timedelta(days=30),
            usage_limit=100,
            used_count=0,
            is_active=True,
        )
        values.update(overrides)
        coupon = Coupon(organizer_id=organizer.id, code=code, **values)
        session.add(coupon)
        await session.commit()
        return coupon

    return factory


@pytest.fixture
def make_booking(session):
    """Insert a booking row directly, bypassing capacity accounting."""

    async def factory(user: User, event: Event, number_of_tickets=1, **overrides) -> Booking:
        amount = event.unit_price * number_of_tickets
        values = dict(
            number_of_tickets=number_of_tickets,
            original_amount=amount,
            discount_amount=Decimal("0.00"),
            total_amount=amount,
            payment_status=PaymentStatus.PAID,
            status=BookingStatus.CONFIRMED,
            qr_code=f"{event.id}-{user.id}-0",
        )
        values.update(overrides)
        booking = Booking(user_id=user.id, event_id=event.id, **values)
        session.add(booking)
        await session.commit()
        return booking

    return factory


@pytest.fixture
def auth_headers():
    def build(principal) -> dict:
        token = create_access_token(str(principal.id), principal.kind.value)
        return {"Authorization": f"Bearer {token}"}

    return build


@pytest_asyncio.fixture
async def client(session_factory):
    async def override_get_db():
        async with session_factory() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
