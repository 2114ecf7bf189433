from dataclasses import dataclass
from datetime import date, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.config import settings
from booking_engine.core.errors import BookingNotFound, ServiceNotFound
from booking_engine.models.booking import ACTIVE_STATUSES, Booking, BookingStatus
from booking_engine.models.service import Service
from booking_engine.services.availability_service import business_now
from booking_engine.services.time_codec import label_to_minutes


async def list_active_services(session: AsyncSession) -> list[Service]:
    result = await session.execute(select(Service).where(Service.is_active == True).order_by(Service.id))  # noqa: E712
    return list(result.scalars().all())


async def get_active_service(session: AsyncSession, service_id: int) -> Service:
    service = await session.get(Service, service_id)
    if not service or not service.is_active:
        raise ServiceNotFound(service_id)
    return service


async def list_bookings(
    session: AsyncSession,
    status: BookingStatus | None = None,
    booking_date: date | None = None,
) -> list[Booking]:
    """Admin listing, newest first."""
    q = select(Booking).order_by(Booking.created_at.desc(), Booking.id.desc())
    if status is not None:
        q = q.where(Booking.status == status)
    if booking_date is not None:
        q = q.where(Booking.booking_date == booking_date)
    result = await session.execute(q)
    return list(result.scalars().all())


async def find_latest_booking(session: AsyncSession, phone: str, email: str) -> Booking:
    """Most recent booking made with this phone AND email."""
    result = await session.execute(
        select(Booking)
        .where(Booking.user_phone == phone.strip(), Booking.user_email == email.strip())
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .limit(1)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise BookingNotFound()
    return booking


@dataclass(frozen=True)
class BookingProgress:
    stage: str
    starts_soon: bool


def session_window(booking: Booking) -> tuple[datetime, datetime]:
    """Session start/end as business-timezone datetimes."""
    d = booking.booking_date
    start = datetime(d.year, d.month, d.day, tzinfo=settings.business_tz) + timedelta(
        minutes=label_to_minutes(booking.time)
    )
    return start, start + timedelta(minutes=booking.duration)


def describe_progress(booking: Booking, now: datetime | None = None) -> BookingProgress:
    now = business_now(now)
    status = BookingStatus(booking.status)
    start, end = session_window(booking)
    if status is BookingStatus.CONFIRMED and now >= end:
        stage = "completed"
    elif status is BookingStatus.CONFIRMED and now >= start:
        stage = "in_session"
    else:
        stage = status.value
    starts_soon = (
        status in ACTIVE_STATUSES
        and now < start
        and start - now < timedelta(hours=settings.starts_soon_hours)
    )
    return BookingProgress(stage=stage, starts_soon=starts_soon)
