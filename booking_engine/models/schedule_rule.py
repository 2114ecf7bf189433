from datetime import date as date_type
from enum import Enum

from sqlalchemy import JSON, Column
from sqlalchemy import Enum as SAEnum
from sqlmodel import Field, SQLModel


class RuleType(str, Enum):
    WEEKDAY = "weekday"
    WEEKEND = "weekend"
    CUSTOM = "custom"


class ScheduleRule(SQLModel, table=True):
    """Admin-authored opening hours. ``date`` is set only for custom rules and
    ``service_id`` is None for rules that apply to every service."""

    __tablename__ = "schedule_rules"
    id: int | None = Field(default=None, primary_key=True)
    type: RuleType = Field(
        sa_column=Column(
            SAEnum(RuleType, native_enum=False, length=16, values_callable=lambda e: [m.value for m in e]),
            nullable=False,
            index=True,
        )
    )
    date: date_type | None = Field(default=None, index=True)
    service_id: int | None = Field(default=None, foreign_key="services.id", index=True)
    is_closed: bool = False
    slots: list[str] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))
