"""
Reservation of a single seat for a screening.

Key design decisions:
- Unique constraint on (screening_id, row, seat) is the authoritative guard
  against double booking. Two requests can both see a free seat; only one
  INSERT survives the index.
- Cancellation deletes the row (guarded by version) so the seat key is free
  again immediately.
"""

import enum

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin, VersionedMixin


class ReservationStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class Reservation(Base, TimestampMixin, VersionedMixin):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, index=True)
    screening_id = Column(Integer, ForeignKey("screenings.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    row = Column("seat_row", Integer, nullable=False)
    seat = Column("seat_number", Integer, nullable=False)
    status = Column(String(20), nullable=False, default=ReservationStatus.CONFIRMED.value)

    screening = relationship("Screening", back_populates="reservations")
    user = relationship("User", back_populates="reservations")

    __table_args__ = (
        UniqueConstraint("screening_id", "seat_row", "seat_number", name="uq_reservation_seat"),
        CheckConstraint("seat_row >= 0", name="check_reservation_row_non_negative"),
        CheckConstraint("seat_number >= 0", name="check_reservation_seat_non_negative"),
        CheckConstraint("status IN ('pending', 'confirmed', 'cancelled')", name="check_reservation_status"),
    )

    def __repr__(self) -> str:
        return (
            f"<Reservation(id={self.id}, screening={self.screening_id}, "
            f"seat=({self.row},{self.seat}), user={self.user_id})>"
        )
