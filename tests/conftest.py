import os

# Settings are read at import time; point them at SQLite before importing the package.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./.pytest-booking.db"
os.environ["ENV"] = "test"
os.environ["NOTIFICATION_WEBHOOK_URL"] = ""
os.environ["BUSINESS_TIMEZONE"] = "Asia/Kolkata"

from datetime import UTC, date, datetime

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

import booking_engine.models  # noqa: F401 - register tables
from booking_engine.models.booking import Booking, BookingStatus, PaymentMethod
from booking_engine.models.schedule_rule import RuleType, ScheduleRule
from booking_engine.models.service import Service


@pytest.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'booking.db'}")
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def session(session_maker):
    async with session_maker() as s:
        yield s


@pytest.fixture
def make_service(session_maker):
    async def _make(title: str = "Cold Plunge", capacity: int = 1, **kwargs) -> Service:
        kwargs.setdefault("price_60", 1000)
        service = Service(title=title, capacity=capacity, **kwargs)
        async with session_maker() as s:
            s.add(service)
            await s.commit()
            await s.refresh(service)
        return service

    return _make


@pytest.fixture
def make_rule(session_maker):
    async def _make(
        type: RuleType,
        slots: list[str] | None = None,
        service_id: int | None = None,
        rule_date: date | None = None,
        is_closed: bool = False,
    ) -> ScheduleRule:
        rule = ScheduleRule(
            type=type,
            date=rule_date,
            service_id=service_id,
            is_closed=is_closed,
            slots=list(slots or []),
        )
        async with session_maker() as s:
            s.add(rule)
            await s.commit()
            await s.refresh(rule)
        return rule

    return _make


@pytest.fixture
def make_booking(session_maker):
    async def _make(
        service_id: int,
        booking_date: date,
        time: str,
        duration: int = 60,
        status: BookingStatus = BookingStatus.CONFIRMED,
        phone: str = "9876543210",
        email: str = "guest@example.com",
        created_at: datetime | None = None,
    ) -> Booking:
        booking = Booking(
            service_id=service_id,
            booking_date=booking_date,
            time=time,
            duration=duration,
            user_name="Guest",
            user_email=email,
            user_phone=phone,
            payment_method=PaymentMethod.PAY_AT_VENUE,
            status=status,
            created_at=created_at or datetime.now(UTC),
        )
        async with session_maker() as s:
            s.add(booking)
            await s.commit()
            await s.refresh(booking)
        return booking

    return _make
