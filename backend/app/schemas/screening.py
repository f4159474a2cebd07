"""
Pydantic schemas for cinemas, screenings and seat maps.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class CinemaCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    rows: int = Field(..., gt=0, le=50)
    seats_per_row: int = Field(..., gt=0, le=50)


class CinemaResponse(BaseModel):
    id: int
    name: str
    rows: int
    seats_per_row: int

    model_config = {"from_attributes": True}


class ScreeningCreate(BaseModel):
    cinema_id: int
    movie_title: str = Field(..., min_length=1, max_length=255)
    starts_at: datetime


class ScreeningUpdate(BaseModel):
    version: str = Field(..., min_length=1, max_length=32)
    movie_title: Optional[str] = Field(None, min_length=1, max_length=255)
    starts_at: Optional[datetime] = None


class ScreeningResponse(BaseModel):
    id: int
    version: str
    cinema_id: int
    cinema_name: str
    rows: int
    seats_per_row: int
    movie_title: str
    starts_at: datetime


class SeatStateResponse(BaseModel):
    row: int
    seat: int
    is_reserved: bool
    holder_id: Optional[int] = None

    model_config = {"from_attributes": True}
