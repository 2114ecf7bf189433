import logging
from dataclasses import dataclass, field
from enum import Enum

from booking_engine.models.schedule_rule import ScheduleRule
from booking_engine.services.time_codec import label_to_minutes, minutes_to_label

logger = logging.getLogger(__name__)

BOOKABLE_DURATIONS = (30, 60)


class SlotReason(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    NO_SCHEDULE = "no_schedule"
    UNAVAILABLE = "unavailable"  # malformed schedule data
    PAST_DATE = "past_date"


@dataclass(frozen=True)
class CandidateSlot:
    label: str
    start_minute: int


@dataclass
class SlotPlan:
    reason: SlotReason
    slots: list[CandidateSlot] = field(default_factory=list)


def finest_spacing(minutes: list[int]) -> int | None:
    ordered = sorted(set(minutes))
    gaps = [b - a for a, b in zip(ordered, ordered[1:])]
    return min(gaps) if gaps else None


def check_slot_spacing(rule: ScheduleRule, minutes: list[int]) -> bool:
    """Occupancy counting assumes every bookable duration is a multiple of the
    finest slot spacing; log when a rule breaks that."""
    spacing = finest_spacing(minutes)
    if spacing is None:
        return True
    if any(d % spacing for d in BOOKABLE_DURATIONS):
        logger.warning(
            "Schedule rule %s has slot spacing %d min which does not divide durations %s",
            rule.id,
            spacing,
            BOOKABLE_DURATIONS,
        )
        return False
    return True


def generate_slots(rule: ScheduleRule) -> SlotPlan:
    """Expand a resolved rule into candidate slots in authored order.

    Raises MalformedSlotLabel if any label cannot be parsed.
    """
    if rule.is_closed:
        return SlotPlan(reason=SlotReason.CLOSED)
    seen: set[int] = set()
    slots: list[CandidateSlot] = []
    for label in rule.slots or []:
        start = label_to_minutes(label)
        if start in seen:
            continue
        seen.add(start)
        slots.append(CandidateSlot(label=minutes_to_label(start), start_minute=start))
    check_slot_spacing(rule, [s.start_minute for s in slots])
    return SlotPlan(reason=SlotReason.OPEN, slots=slots)
