from booking_engine.models.service import Service, ServicePublic
from booking_engine.models.schedule_rule import RuleType, ScheduleRule
from booking_engine.models.booking import (
    ACTIVE_STATUSES,
    Booking,
    BookingCreate,
    BookingPublic,
    BookingStatus,
    PaymentMethod,
)
from booking_engine.models.booking_day_lock import BookingDayLock

__all__ = [
    "Service",
    "ServicePublic",
    "RuleType",
    "ScheduleRule",
    "ACTIVE_STATUSES",
    "Booking",
    "BookingCreate",
    "BookingPublic",
    "BookingStatus",
    "PaymentMethod",
    "BookingDayLock",
]
