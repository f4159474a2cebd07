"""Initial schema: users, cinemas, screenings, reservations with version tokens.

Revision ID: 001
Revises: None
Create Date: 2026-10-17
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("phone_number", sa.String(32), nullable=True),
        sa.Column("date_of_birth", sa.Date(), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        # Opaque optimistic concurrency token, rewritten on every write
        sa.Column("version", sa.String(32), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "cinemas",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("row_count", sa.Integer(), nullable=False),
        sa.Column("seats_per_row", sa.Integer(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("row_count > 0", name="check_cinema_rows_positive"),
        sa.CheckConstraint("seats_per_row > 0", name="check_cinema_seats_positive"),
    )
    op.create_index("ix_cinemas_id", "cinemas", ["id"])

    op.create_table(
        "screenings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("cinema_id", sa.Integer(), sa.ForeignKey("cinemas.id", ondelete="CASCADE"), nullable=False),
        sa.Column("movie_title", sa.String(255), nullable=False),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("version", sa.String(32), nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_screenings_id", "screenings", ["id"])
    op.create_index("ix_screenings_cinema_id", "screenings", ["cinema_id"])
    op.create_index("ix_screenings_starts_at", "screenings", ["starts_at"])

    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("screening_id", sa.Integer(), sa.ForeignKey("screenings.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("seat_row", sa.Integer(), nullable=False),
        sa.Column("seat_number", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default=sa.text("'confirmed'")),
        sa.Column("version", sa.String(32), nullable=False),
        *_timestamps(),
        # THE double-booking guard. Concurrent INSERTs for one seat: one wins,
        # the rest fail here no matter what they read beforehand.
        sa.UniqueConstraint("screening_id", "seat_row", "seat_number", name="uq_reservation_seat"),
        sa.CheckConstraint("seat_row >= 0", name="check_reservation_row_non_negative"),
        sa.CheckConstraint("seat_number >= 0", name="check_reservation_seat_non_negative"),
        sa.CheckConstraint(
            "status IN ('pending', 'confirmed', 'cancelled')",
            name="check_reservation_status",
        ),
    )
    op.create_index("ix_reservations_id", "reservations", ["id"])
    op.create_index("ix_reservations_screening_id", "reservations", ["screening_id"])
    op.create_index("ix_reservations_user_id", "reservations", ["user_id"])


def downgrade() -> None:
    op.drop_table("reservations")
    op.drop_table("screenings")
    op.drop_table("cinemas")
    op.drop_table("users")
