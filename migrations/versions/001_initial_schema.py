"""Initial schema: services, schedule_rules, bookings, booking_day_locks.

Revision ID: 001_initial
Revises:
Create Date: 2025-03-02

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "services",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sa.String(), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("price_60", sa.Integer(), nullable=False),
        sa.Column("price_30", sa.Integer(), nullable=True),
        sa.Column("previous_price_60", sa.Integer(), nullable=True),
        sa.Column("previous_price_30", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.CheckConstraint("capacity > 0", name="ck_services_capacity_positive"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "schedule_rules",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(length=16), nullable=False),
        sa.Column("date", sa.Date(), nullable=True),
        sa.Column("service_id", sa.Integer(), nullable=True),
        sa.Column("is_closed", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("slots", sa.JSON(), nullable=False),
        sa.CheckConstraint("type IN ('weekday', 'weekend', 'custom')", name="ck_schedule_rules_type"),
        sa.CheckConstraint("(type = 'custom') = (date IS NOT NULL)", name="ck_schedule_rules_date_only_custom"),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_schedule_rules_type"), "schedule_rules", ["type"], unique=False)
    op.create_index(op.f("ix_schedule_rules_date"), "schedule_rules", ["date"], unique=False)
    op.create_index(op.f("ix_schedule_rules_service_id"), "schedule_rules", ["service_id"], unique=False)

    op.create_table(
        "bookings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("service_id", sa.Integer(), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("time", sa.String(), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=False),
        sa.Column("user_name", sa.String(), nullable=False),
        sa.Column("user_email", sa.String(), nullable=False),
        sa.Column("user_phone", sa.String(), nullable=False),
        sa.Column("payment_method", sa.String(length=32), nullable=False),
        sa.Column("transaction_id", sa.String(), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("duration IN (30, 60)", name="ck_bookings_duration"),
        sa.CheckConstraint(
            "status IN ('pending', 'payment_review', 'confirmed', 'cancelled')", name="ck_bookings_status"
        ),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_bookings_service_id_booking_date", "bookings", ["service_id", "booking_date"], unique=False
    )
    op.create_index(op.f("ix_bookings_user_email"), "bookings", ["user_email"], unique=False)
    op.create_index(op.f("ix_bookings_user_phone"), "bookings", ["user_phone"], unique=False)
    op.create_index(op.f("ix_bookings_status"), "bookings", ["status"], unique=False)

    op.create_table(
        "booking_day_locks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("service_id", sa.Integer(), nullable=False),
        sa.Column("booking_date", sa.Date(), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("service_id", "booking_date", name="uq_booking_day_locks_service_date"),
    )


def downgrade() -> None:
    op.drop_table("booking_day_locks")
    op.drop_index(op.f("ix_bookings_status"), table_name="bookings")
    op.drop_index(op.f("ix_bookings_user_phone"), table_name="bookings")
    op.drop_index(op.f("ix_bookings_user_email"), table_name="bookings")
    op.drop_index("ix_bookings_service_id_booking_date", table_name="bookings")
    op.drop_table("bookings")
    op.drop_index(op.f("ix_schedule_rules_service_id"), table_name="schedule_rules")
    op.drop_index(op.f("ix_schedule_rules_date"), table_name="schedule_rules")
    op.drop_index(op.f("ix_schedule_rules_type"), table_name="schedule_rules")
    op.drop_table("schedule_rules")
    op.drop_table("services")
