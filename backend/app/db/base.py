"""
Declarative base and shared column mixins.
"""

import uuid

from sqlalchemy import Column, DateTime, String, func
from sqlalchemy.orm import DeclarativeBase


def new_version_token() -> str:
    """Opaque version token. Random, so a re-used row id never repeats a stale token."""
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    pass


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )


class VersionedMixin:
    """Optimistic concurrency token; rewritten on every successful write."""

    version = Column(String(32), nullable=False, default=new_version_token)
