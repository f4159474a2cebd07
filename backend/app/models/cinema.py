"""
Cinema hall: a rectangular grid of rows x seats_per_row.
"""

from sqlalchemy import CheckConstraint, Column, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin


class Cinema(Base, TimestampMixin):
    __tablename__ = "cinemas"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    rows = Column("row_count", Integer, nullable=False)
    seats_per_row = Column(Integer, nullable=False)

    screenings = relationship(
        "Screening",
        back_populates="cinema",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("row_count > 0", name="check_cinema_rows_positive"),
        CheckConstraint("seats_per_row > 0", name="check_cinema_seats_positive"),
    )

    def __repr__(self) -> str:
        return f"<Cinema(id={self.id}, name={self.name}, grid={self.rows}x{self.seats_per_row})>"
