from datetime import date

from pydantic import BaseModel

from booking_engine.models.booking import BookingStatus, PaymentMethod


class SlotInfo(BaseModel):
    time: str  # e.g. "5:00 PM"
    start_minute: int
    occupied: int
    capacity: int
    available: bool


class AvailableSlotsResponse(BaseModel):
    service_id: int
    date: str  # YYYY-MM-DD
    duration: int
    price: int
    previous_price: int | None = None
    reason: str  # open | closed | no_schedule | unavailable | past_date
    available_slots: list[str]
    slots: list[SlotInfo]


class BookingRequest(BaseModel):
    service_id: int
    booking_date: date
    time: str
    duration: int = 60
    user_name: str
    user_email: str
    user_phone: str
    payment_method: PaymentMethod = PaymentMethod.PAY_AT_VENUE
    transaction_id: str | None = None


class BookingStatusResponse(BaseModel):
    id: int
    service_id: int
    booking_date: date
    time: str
    duration: int
    status: BookingStatus
    stage: str  # status, or in_session / completed for confirmed bookings
    starts_soon: bool


class StatusTransitionRequest(BaseModel):
    status: BookingStatus
