import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.errors import BookingNotFound, InvalidTransition
from booking_engine.models.booking import Booking, BookingStatus, PaymentMethod

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.PAYMENT_REVIEW: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
}

EVENT_BOOKING_CREATED = "booking_created"
EVENT_PAYMENT_REVIEW_EXPIRED = "payment_review_expired"
_EVENT_FOR_STATUS = {
    BookingStatus.CONFIRMED: "booking_confirmed",
    BookingStatus.CANCELLED: "booking_cancelled",
}


def can_transition(current: BookingStatus, target: BookingStatus) -> bool:
    return BookingStatus(target) in ALLOWED_TRANSITIONS[BookingStatus(current)]


def booking_snapshot(booking: Booking) -> dict:
    return {
        "id": booking.id,
        "service_id": booking.service_id,
        "booking_date": booking.booking_date.isoformat(),
        "time": booking.time,
        "duration": booking.duration,
        "user_name": booking.user_name,
        "user_email": booking.user_email,
        "user_phone": booking.user_phone,
        "payment_method": PaymentMethod(booking.payment_method).value,
        "status": BookingStatus(booking.status).value,
    }


@dataclass(frozen=True)
class LifecycleEvent:
    type: str
    booking_id: int
    previous_status: BookingStatus | None
    status: BookingStatus
    booking: dict = field(default_factory=dict)

    def to_payload(self) -> dict:
        return {
            "type": self.type,
            "booking_id": self.booking_id,
            "previous_status": self.previous_status.value if self.previous_status else None,
            "status": self.status.value,
            "booking": self.booking,
        }


def created_event(booking: Booking) -> LifecycleEvent:
    return LifecycleEvent(
        type=EVENT_BOOKING_CREATED,
        booking_id=booking.id,
        previous_status=None,
        status=BookingStatus(booking.status),
        booking=booking_snapshot(booking),
    )


async def transition_booking(
    session: AsyncSession,
    booking_id: int,
    target: BookingStatus,
    event_type: str | None = None,
    expected: BookingStatus | None = None,
) -> LifecycleEvent:
    """Move a booking to ``target`` if the state machine allows it.

    The row is read under FOR UPDATE so two admins acting at once cannot both
    apply a transition from the same state. With ``expected`` set, the locked
    row must still be in that status or InvalidTransition is raised. Flushes
    only; the caller commits.
    """
    target = BookingStatus(target)
    result = await session.execute(
        select(Booking).where(Booking.id == booking_id).with_for_update().execution_options(populate_existing=True)
    )
    booking = result.scalar_one_or_none()
    if not booking:
        raise BookingNotFound(booking_id)
    current = BookingStatus(booking.status)
    if expected is not None and current is not BookingStatus(expected):
        raise InvalidTransition(current.value, target.value)
    if not can_transition(current, target):
        raise InvalidTransition(current.value, target.value)
    booking.status = target
    session.add(booking)
    await session.flush()
    logger.info("Booking %s: %s -> %s", booking_id, current.value, target.value)
    return LifecycleEvent(
        type=event_type or _EVENT_FOR_STATUS[target],
        booking_id=booking_id,
        previous_status=current,
        status=target,
        booking=booking_snapshot(booking),
    )


async def expire_stale_payment_reviews(
    session: AsyncSession, older_than_hours: int, now: datetime | None = None
) -> list[LifecycleEvent]:
    """Cancel payment_review bookings whose reference was never verified in time."""
    now = now or datetime.now(UTC)
    if now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    cutoff = now - timedelta(hours=older_than_hours)
    result = await session.execute(
        select(Booking.id).where(
            Booking.status == BookingStatus.PAYMENT_REVIEW,
            Booking.created_at < cutoff,
        )
    )
    events: list[LifecycleEvent] = []
    for (booking_id,) in result.all():
        try:
            events.append(
                await transition_booking(
                    session,
                    booking_id,
                    BookingStatus.CANCELLED,
                    event_type=EVENT_PAYMENT_REVIEW_EXPIRED,
                    expected=BookingStatus.PAYMENT_REVIEW,
                )
            )
        except InvalidTransition:
            # no longer in payment_review, e.g. confirmed since the id was read
            continue
    return events
