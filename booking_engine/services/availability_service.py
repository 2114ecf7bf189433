import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from booking_engine.core.config import settings
from booking_engine.core.errors import MalformedSlotLabel, NoScheduleDefined
from booking_engine.models.service import Service
from booking_engine.services.occupancy import count_occupancy, fetch_active_bookings
from booking_engine.services.rule_resolver import resolve_rule_for
from booking_engine.services.slot_generator import CandidateSlot, SlotReason, generate_slots

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotView:
    label: str
    start_minute: int
    occupied: int
    capacity: int
    bookable: bool


@dataclass
class AvailabilityResult:
    reason: SlotReason
    slots: list[SlotView] = field(default_factory=list)

    @property
    def available(self) -> list[str]:
        return [s.label for s in self.slots if s.bookable]


def business_now(now: datetime | None = None) -> datetime:
    """Current wall-clock time in the business timezone. Naive values are taken as local already."""
    tz = settings.business_tz
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        return now.replace(tzinfo=tz)
    return now.astimezone(tz)


def minute_of_day(moment: datetime) -> int:
    return moment.hour * 60 + moment.minute


def effective_capacity(service: Service) -> int:
    return service.capacity if service.capacity and service.capacity > 0 else 1


def is_past_slot(target_date: date, start_minute: int, now: datetime) -> bool:
    """True if the slot on target_date has already started at ``now`` (business time)."""
    today = now.date()
    if target_date != today:
        return target_date < today
    return start_minute <= minute_of_day(now)


def filter_bookable(
    candidates: Iterable[CandidateSlot],
    occupancy: dict[str, int],
    capacity: int,
    target_date: date,
    now: datetime,
) -> list[SlotView]:
    views: list[SlotView] = []
    for c in candidates:
        occupied = occupancy.get(c.label, 0)
        bookable = occupied < capacity and not is_past_slot(target_date, c.start_minute, now)
        views.append(
            SlotView(
                label=c.label,
                start_minute=c.start_minute,
                occupied=occupied,
                capacity=capacity,
                bookable=bookable,
            )
        )
    return views


async def get_availability(
    session: AsyncSession, service: Service, target_date: date, now: datetime | None = None
) -> AvailabilityResult:
    """Advisory read path: which slots of target_date could still be booked.

    Closed days, missing schedules and malformed rule data all come back with
    no slots; ``reason`` tells them apart for diagnostics.
    """
    now = business_now(now)
    if target_date < now.date():
        return AvailabilityResult(reason=SlotReason.PAST_DATE)
    try:
        rule = await resolve_rule_for(session, service.id, target_date)
        plan = generate_slots(rule)
        if plan.reason is not SlotReason.OPEN:
            return AvailabilityResult(reason=plan.reason)
        bookings = await fetch_active_bookings(session, service.id, target_date)
        occupancy = count_occupancy(plan.slots, bookings)
    except NoScheduleDefined as e:
        logger.info("%s", e)
        return AvailabilityResult(reason=SlotReason.NO_SCHEDULE)
    except MalformedSlotLabel as e:
        logger.error("Availability for service=%s date=%s degraded: %s", service.id, target_date, e)
        return AvailabilityResult(reason=SlotReason.UNAVAILABLE)
    views = filter_bookable(plan.slots, occupancy, effective_capacity(service), target_date, now)
    return AvailabilityResult(reason=SlotReason.OPEN, slots=views)
