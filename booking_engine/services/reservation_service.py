import asyncio
import logging
import re
import weakref
from datetime import date, datetime

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.config import settings
from booking_engine.core.errors import MalformedSlotLabel, NoScheduleDefined, SlotConflict, ValidationError
from booking_engine.models.booking import Booking, BookingCreate, BookingStatus, PaymentMethod
from booking_engine.models.booking_day_lock import BookingDayLock
from booking_engine.services.availability_service import business_now, effective_capacity, is_past_slot
from booking_engine.services.booking_service import get_active_service
from booking_engine.services.occupancy import count_occupancy, covered_slots, fetch_active_bookings
from booking_engine.services.rule_resolver import resolve_rule_for
from booking_engine.services.slot_generator import BOOKABLE_DURATIONS, SlotPlan, SlotReason, generate_slots
from booking_engine.services.time_codec import label_to_minutes, minutes_to_label

logger = logging.getLogger(__name__)

PHONE_RE = re.compile(r"^\d{10}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# One asyncio.Lock per (service_id, date) while someone holds or waits on it
_day_locks: "weakref.WeakValueDictionary[tuple[int, date], asyncio.Lock]" = weakref.WeakValueDictionary()


def _day_lock(service_id: int, d: date) -> asyncio.Lock:
    key = (service_id, d)
    lock = _day_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _day_locks[key] = lock
    return lock


def validate_request(data: BookingCreate) -> BookingCreate:
    """Check contact, duration and payment fields; return a normalised copy.

    Raises ValidationError naming the first offending field.
    """
    name = (data.user_name or "").strip()
    if not name:
        raise ValidationError("user_name", "Please enter your name.")
    phone = (data.user_phone or "").strip()
    if not PHONE_RE.match(phone):
        raise ValidationError("user_phone", "Phone must be exactly 10 digits.")
    email = (data.user_email or "").strip()
    if not EMAIL_RE.match(email):
        raise ValidationError("user_email", "Please enter a valid email address.")
    if data.duration not in BOOKABLE_DURATIONS:
        raise ValidationError("duration", "Duration must be 30 or 60 minutes.")
    try:
        method = PaymentMethod(data.payment_method)
    except ValueError:
        raise ValidationError("payment_method", "Unknown payment method.")
    reference = (data.transaction_id or "").strip() or None
    if method.requires_prepaid_proof and len(reference or "") < settings.min_transaction_id_length:
        raise ValidationError("transaction_id", "Please enter a valid payment reference.")
    try:
        time = minutes_to_label(label_to_minutes(data.time))
    except MalformedSlotLabel:
        raise ValidationError("time", "Please choose one of the offered time slots.")
    return BookingCreate(
        service_id=data.service_id,
        booking_date=data.booking_date,
        time=time,
        duration=data.duration,
        user_name=name,
        user_email=email,
        user_phone=phone,
        payment_method=method,
        transaction_id=reference,
    )


async def _offered_plan(session: AsyncSession, service_id: int, d: date) -> SlotPlan:
    try:
        rule = await resolve_rule_for(session, service_id, d)
        plan = generate_slots(rule)
    except NoScheduleDefined:
        raise ValidationError("booking_date", "No sessions are available on this date.")
    except MalformedSlotLabel as e:
        logger.error("Reservation for service=%s date=%s hit bad schedule data: %s", service_id, d, e)
        raise ValidationError("booking_date", "No sessions are available on this date.")
    if plan.reason is SlotReason.CLOSED:
        raise ValidationError("booking_date", "The facility is closed on this date.")
    return plan


async def _lock_service_day(session: AsyncSession, service_id: int, d: date) -> None:
    """Take the row lock that serialises reservations for this service-day.

    The lock row is upserted first so concurrent first bookings of a day do not
    race on its creation; SELECT ... FOR UPDATE then blocks other writers
    until this transaction ends.
    """
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        stmt = pg_insert(BookingDayLock).values(service_id=service_id, booking_date=d, version=0)
        await session.execute(stmt.on_conflict_do_nothing(index_elements=["service_id", "booking_date"]))
    elif dialect == "sqlite":
        stmt = sqlite_insert(BookingDayLock).values(service_id=service_id, booking_date=d, version=0)
        await session.execute(stmt.on_conflict_do_nothing(index_elements=["service_id", "booking_date"]))
    result = await session.execute(
        select(BookingDayLock)
        .where(BookingDayLock.service_id == service_id, BookingDayLock.booking_date == d)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    row = result.scalar_one_or_none()
    if row is None:
        row = BookingDayLock(service_id=service_id, booking_date=d, version=0)
    row.version += 1
    session.add(row)
    await session.flush()


async def reserve_booking(session: AsyncSession, data: BookingCreate, now: datetime | None = None) -> Booking:
    """Atomically re-check capacity and record a booking.

    Every slot the booking would span must still have room according to the
    latest committed state. The check and the insert run under the service-day
    lock and are committed before the lock is released, so this function owns
    the transaction. Raises ValidationError, ServiceNotFound or SlotConflict;
    nothing is written in any of those cases.
    """
    data = validate_request(data)
    now = business_now(now)
    d = data.booking_date
    if d < now.date():
        raise ValidationError("booking_date", "Please choose today or a later date.")
    service = await get_active_service(session, data.service_id)
    start = label_to_minutes(data.time)
    plan = await _offered_plan(session, service.id, d)
    if start not in {c.start_minute for c in plan.slots}:
        raise ValidationError("time", "Please choose one of the offered time slots.")
    if is_past_slot(d, start, now):
        raise ValidationError("time", "This time slot has already started.")

    capacity = effective_capacity(service)
    status = BookingStatus.PAYMENT_REVIEW if data.payment_method.requires_prepaid_proof else BookingStatus.PENDING
    async with _day_lock(service.id, d):
        try:
            await _lock_service_day(session, service.id, d)
            bookings = await fetch_active_bookings(session, service.id, d)
            spanned = covered_slots(plan.slots, start, data.duration)
            try:
                occupancy = count_occupancy(spanned, bookings)
            except MalformedSlotLabel as e:
                logger.error("Reservation for service=%s date=%s hit bad booking data: %s", service.id, d, e)
                raise ValidationError("booking_date", "No sessions are available on this date.")
            full = [c.label for c in spanned if occupancy[c.label] >= capacity]
            if full:
                logger.info(
                    "Slot conflict: service=%s date=%s time=%s full=%s capacity=%d",
                    service.id, d, data.time, full, capacity,
                )
                raise SlotConflict(service.id, d, data.time)
            booking = Booking(
                service_id=service.id,
                booking_date=d,
                time=data.time,
                duration=data.duration,
                user_name=data.user_name,
                user_email=data.user_email,
                user_phone=data.user_phone,
                payment_method=data.payment_method,
                transaction_id=data.transaction_id,
                status=status,
            )
            session.add(booking)
            await session.flush()
            await session.refresh(booking)
            await session.commit()
        except Exception:
            await session.rollback()
            raise
    logger.info(
        "Booking %s reserved: service=%s date=%s time=%s duration=%d status=%s",
        booking.id, service.id, d, booking.time, booking.duration, booking.status.value,
    )
    return booking
