"""
Screening of a movie in a cinema.

Deleting a screening removes its reservations through ON DELETE CASCADE.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin, VersionedMixin


class Screening(Base, TimestampMixin, VersionedMixin):
    __tablename__ = "screenings"

    id = Column(Integer, primary_key=True, index=True)
    cinema_id = Column(Integer, ForeignKey("cinemas.id", ondelete="CASCADE"), nullable=False, index=True)
    movie_title = Column(String(255), nullable=False)
    starts_at = Column(DateTime(timezone=True), nullable=False)

    cinema = relationship("Cinema", back_populates="screenings", lazy="selectin")
    reservations = relationship(
        "Reservation",
        back_populates="screening",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("ix_screenings_starts_at", "starts_at"),
    )

    def __repr__(self) -> str:
        return f"<Screening(id={self.id}, cinema={self.cinema_id}, movie={self.movie_title})>"
