"""
Pydantic schemas for seat reservations and conflict payloads.
"""

from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, Field


class SeatPosition(BaseModel):
    row: int = Field(..., ge=0)
    seat: int = Field(..., ge=0)


class ReservationCreate(SeatPosition):
    screening_id: int


class ReservationBatchCreate(BaseModel):
    screening_id: int
    seats: list[SeatPosition] = Field(..., min_length=1, max_length=10)


class ReservationResponse(BaseModel):
    id: int
    version: str
    screening_id: int
    user_id: int
    row: int
    seat: int
    status: str
    created_at: datetime


class ReservationCancelResponse(BaseModel):
    message: str
    reservation_id: int
    status: str


class ConflictResponse(BaseModel):
    """Body of every 409: what the server holds now, so the client can decide."""

    message: str
    latest_fields: dict[str, Any]
    latest_version: Optional[str] = None
