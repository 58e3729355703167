# backend/alembic/versions/001_scheduling_core.py
"""Scheduling core: users, availability, offers, bookings

Revision ID: 001_scheduling_core
Revises:
Create Date: 2026-10-17 00:00:00.000000
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001_scheduling_core"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TS = sa.DateTime(timezone=True)


def upgrade() -> None:
    """Create scheduling tables."""
    print("Creating scheduling tables...")

    op.create_table(
        "users",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(120), nullable=True),
        sa.Column("role", sa.String(20), nullable=False, server_default="student"),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="Europe/Berlin"),
        sa.Column("created_at", TS, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", TS, nullable=True),
        sa.CheckConstraint("role IN ('teacher', 'student')", name="ck_users_role"),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "availability_rules",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "teacher_id",
            sa.String(26),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("weekday", sa.Integer(), nullable=False),
        sa.Column("start_min", sa.Integer(), nullable=False),
        sa.Column("end_min", sa.Integer(), nullable=False),
        sa.Column("timezone", sa.String(64), nullable=False),
        sa.Column("valid_from", TS, nullable=False),
        sa.Column("valid_to", TS, nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.CheckConstraint("weekday >= 0 AND weekday <= 6", name="ck_availability_rules_weekday"),
        sa.CheckConstraint(
            "start_min >= 0 AND start_min < end_min AND end_min <= 1440",
            name="ck_availability_rules_minutes",
        ),
        sa.CheckConstraint("valid_from < valid_to", name="ck_availability_rules_validity"),
    )
    op.create_index("idx_availability_rules_teacher", "availability_rules", ["teacher_id"])

    op.create_table(
        "availability_ranges",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "teacher_id",
            sa.String(26),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("kind", sa.String(10), nullable=False, server_default="add"),
        sa.Column("start_utc", TS, nullable=False),
        sa.Column("end_utc", TS, nullable=False),
        sa.Column("created_at", TS, nullable=False),
        sa.CheckConstraint("start_utc < end_utc", name="ck_availability_ranges_order"),
    )
    op.create_index(
        "idx_availability_ranges_teacher_start",
        "availability_ranges",
        ["teacher_id", "start_utc"],
    )

    op.create_table(
        "availability_blocks",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "teacher_id",
            sa.String(26),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("start_utc", TS, nullable=False),
        sa.Column("end_utc", TS, nullable=False),
        sa.Column("source", sa.String(10), nullable=False, server_default="manual"),
        sa.Column("created_at", TS, nullable=False),
        sa.UniqueConstraint("teacher_id", "start_utc", name="uq_availability_blocks_teacher_start"),
        sa.CheckConstraint("start_utc < end_utc", name="ck_availability_blocks_order"),
        sa.CheckConstraint("source IN ('rule', 'manual')", name="ck_availability_blocks_source"),
    )
    op.create_index(
        "idx_availability_blocks_teacher_range",
        "availability_blocks",
        ["teacher_id", "start_utc", "end_utc"],
    )

    op.create_table(
        "lesson_offers",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column(
            "teacher_id",
            sa.String(26),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("price_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="EUR"),
        sa.Column("is_active", sa.Integer(), nullable=True, server_default="1"),
        sa.Column("created_at", TS, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", TS, nullable=True),
        sa.UniqueConstraint(
            "teacher_id", "duration_minutes", name="uq_lesson_offers_teacher_duration"
        ),
        sa.CheckConstraint("duration_minutes IN (30, 45, 60)", name="ck_lesson_offers_duration"),
        sa.CheckConstraint("price_cents >= 0", name="ck_lesson_offers_price"),
    )

    op.create_table(
        "bookings",
        sa.Column("id", sa.String(26), primary_key=True),
        sa.Column("teacher_id", sa.String(26), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("student_id", sa.String(26), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("start_utc", TS, nullable=False),
        sa.Column("end_utc", TS, nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("price_cents", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="EUR"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("stripe_checkout_session_id", sa.String(255), nullable=True),
        sa.Column("payment_reference", sa.String(255), nullable=True),
        sa.Column("paid_at", TS, nullable=True),
        sa.Column("cancelled_at", TS, nullable=True),
        sa.Column("refunded_at", TS, nullable=True),
        sa.Column("created_at", TS, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", TS, nullable=True),
        sa.CheckConstraint(
            "status IN ('pending', 'paid', 'canceled', 'refunded')", name="ck_bookings_status"
        ),
        sa.CheckConstraint("duration_minutes > 0", name="check_duration_positive"),
        sa.CheckConstraint("price_cents >= 0", name="check_price_non_negative"),
        sa.CheckConstraint("start_utc < end_utc", name="check_time_order"),
    )
    op.create_index("ix_bookings_id", "bookings", ["id"])
    op.create_index("ix_bookings_status", "bookings", ["status"])
    op.create_index(
        "ix_bookings_stripe_checkout_session_id", "bookings", ["stripe_checkout_session_id"]
    )
    op.create_index("ix_bookings_payment_reference", "bookings", ["payment_reference"])
    op.create_index("idx_bookings_teacher_start", "bookings", ["teacher_id", "start_utc"])
    op.create_index("idx_bookings_student", "bookings", ["student_id"])

    print("Scheduling tables created")


def downgrade() -> None:
    """Drop scheduling tables."""
    print("Dropping scheduling tables...")
    op.drop_table("bookings")
    op.drop_table("lesson_offers")
    op.drop_table("availability_blocks")
    op.drop_table("availability_ranges")
    op.drop_table("availability_rules")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_id", table_name="users")
    op.drop_table("users")
