from datetime import UTC, date, datetime
from enum import Enum

from sqlalchemy import Column, DateTime, Index
from sqlalchemy import Enum as SAEnum
from sqlmodel import Field, SQLModel


def _utc_now() -> datetime:
    """Aware UTC for TIMESTAMP WITH TIME ZONE columns."""
    return datetime.now(UTC)


def _values(enum_cls: type[Enum]) -> list[str]:
    return [m.value for m in enum_cls]


class BookingStatus(str, Enum):
    PENDING = "pending"
    PAYMENT_REVIEW = "payment_review"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


# Statuses that hold a unit of slot capacity
ACTIVE_STATUSES = (BookingStatus.PENDING, BookingStatus.PAYMENT_REVIEW, BookingStatus.CONFIRMED)


class PaymentMethod(str, Enum):
    PAY_AT_VENUE = "pay_at_venue"
    QR_CODE = "qr_code"

    @property
    def requires_prepaid_proof(self) -> bool:
        return self is PaymentMethod.QR_CODE


class Booking(SQLModel, table=True):
    __tablename__ = "bookings"
    __table_args__ = (Index("ix_bookings_service_id_booking_date", "service_id", "booking_date"),)

    id: int | None = Field(default=None, primary_key=True)
    service_id: int = Field(foreign_key="services.id")
    booking_date: date
    time: str  # slot label, e.g. "5:00 PM"
    duration: int  # minutes, 30 or 60
    user_name: str
    user_email: str = Field(index=True)
    user_phone: str = Field(index=True)
    payment_method: PaymentMethod = Field(
        sa_column=Column(
            SAEnum(PaymentMethod, native_enum=False, length=32, values_callable=_values),
            nullable=False,
        )
    )
    transaction_id: str | None = None
    status: BookingStatus = Field(
        sa_column=Column(
            SAEnum(BookingStatus, native_enum=False, length=32, values_callable=_values),
            nullable=False,
            index=True,
        )
    )
    created_at: datetime = Field(
        default_factory=_utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class BookingCreate(SQLModel):
    service_id: int
    booking_date: date
    time: str
    duration: int = 60
    user_name: str
    user_email: str
    user_phone: str
    payment_method: PaymentMethod = PaymentMethod.PAY_AT_VENUE
    transaction_id: str | None = None


class BookingPublic(SQLModel):
    id: int
    service_id: int
    booking_date: date
    time: str
    duration: int
    user_name: str
    user_email: str
    user_phone: str
    payment_method: PaymentMethod
    transaction_id: str | None = None
    status: BookingStatus
    created_at: datetime
