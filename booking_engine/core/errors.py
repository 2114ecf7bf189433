"""Domain errors raised by the availability and reservation services.

Routes translate these into HTTP responses; nothing below the API layer
knows about status codes.
"""
from datetime import date


class BookingEngineError(Exception):
    """Base class for every error the booking core raises on purpose."""


class ValidationError(BookingEngineError):
    """Bad request input. User-visible; retry only after correcting ``field``."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class MalformedSlotLabel(BookingEngineError):
    """A slot label in rule or booking data is not of the form ``H:MM AM|PM``."""

    def __init__(self, label: object) -> None:
        super().__init__(f"Malformed slot label: {label!r}")
        self.label = label


class NoScheduleDefined(BookingEngineError):
    """No rule applies to the service on that date. Not the same as a closed day."""

    def __init__(self, service_id: int, target_date: date) -> None:
        super().__init__(f"No schedule defined for service {service_id} on {target_date.isoformat()}")
        self.service_id = service_id
        self.target_date = target_date


class SlotConflict(BookingEngineError):
    """The slot filled up between the availability read and the reservation write."""

    def __init__(self, service_id: int, booking_date: date, time: str) -> None:
        super().__init__(f"Slot {time} on {booking_date.isoformat()} for service {service_id} is full")
        self.service_id = service_id
        self.booking_date = booking_date
        self.time = time


class InvalidTransition(BookingEngineError):
    def __init__(self, current: str, target: str) -> None:
        super().__init__(f"Cannot move booking from {current} to {target}")
        self.current = current
        self.target = target


class ServiceNotFound(BookingEngineError):
    def __init__(self, service_id: int) -> None:
        super().__init__(f"Service {service_id} not found or inactive")
        self.service_id = service_id


class BookingNotFound(BookingEngineError):
    def __init__(self, booking_id: int | None = None) -> None:
        super().__init__("Booking not found" if booking_id is None else f"Booking {booking_id} not found")
        self.booking_id = booking_id
