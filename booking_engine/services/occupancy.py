from collections.abc import Iterable
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.models.booking import ACTIVE_STATUSES, Booking
from booking_engine.services.slot_generator import CandidateSlot
from booking_engine.services.time_codec import label_to_minutes


def booking_interval(booking: Booking) -> tuple[int, int]:
    """Half-open [start, end) in minutes of day."""
    start = label_to_minutes(booking.time)
    return start, start + int(booking.duration)


def count_occupancy(candidates: Iterable[CandidateSlot], bookings: Iterable[Booking]) -> dict[str, int]:
    """Occupants per candidate label. A 60-minute booking covers every slot
    starting inside its interval, so it counts against each 30-minute sub-slot."""
    candidates = list(candidates)
    counts = {c.label: 0 for c in candidates}
    for booking in bookings:
        if booking.status not in ACTIVE_STATUSES:
            continue
        start, end = booking_interval(booking)
        for c in candidates:
            if start <= c.start_minute < end:
                counts[c.label] += 1
    return counts


def covered_slots(candidates: Iterable[CandidateSlot], start: int, duration: int) -> list[CandidateSlot]:
    """Candidate slots a new booking at ``start`` would occupy."""
    return [c for c in candidates if start <= c.start_minute < start + duration]


async def fetch_active_bookings(session: AsyncSession, service_id: int, d: date) -> list[Booking]:
    result = await session.execute(
        select(Booking).where(
            Booking.service_id == service_id,
            Booking.booking_date == d,
            Booking.status.in_(ACTIVE_STATUSES),
        )
    )
    return list(result.scalars().all())
