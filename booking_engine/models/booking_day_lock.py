from datetime import date

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class BookingDayLock(SQLModel, table=True):
    """Row-lock target serialising reservations for one service on one date."""

    __tablename__ = "booking_day_locks"
    __table_args__ = (UniqueConstraint("service_id", "booking_date", name="uq_booking_day_locks_service_date"),)

    id: int | None = Field(default=None, primary_key=True)
    service_id: int = Field(foreign_key="services.id")
    booking_date: date
    version: int = 0
