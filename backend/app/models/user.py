"""
User model.

Admin capability is a plain flag on the record rather than a role hierarchy.
Profile edits go through the versioned store, so two admins editing the same
user cannot silently overwrite each other.
"""

from sqlalchemy import Boolean, Column, Date, Integer, String
from sqlalchemy.orm import relationship

from app.db.base import Base, TimestampMixin, VersionedMixin


class User(Base, TimestampMixin, VersionedMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    phone_number = Column(String(32), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    is_admin = Column(Boolean, default=False, nullable=False)

    reservations = relationship(
        "Reservation",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, admin={self.is_admin})>"
