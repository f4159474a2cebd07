"""
Pydantic schemas for user-related request/response validation.
"""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    email: EmailStr
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=32, pattern=r"^\+?[0-9 ()-]{3,32}$")
    date_of_birth: Optional[date] = None
    is_admin: bool = False


class UserUpdate(BaseModel):
    """Profile edit. `version` is the token returned by the read the edit is based on."""

    version: str = Field(..., min_length=1, max_length=32)
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=32, pattern=r"^\+?[0-9 ()-]{3,32}$")
    date_of_birth: Optional[date] = None


class VersionedAction(BaseModel):
    version: str = Field(..., min_length=1, max_length=32)


class UserResponse(BaseModel):
    id: int
    version: str
    email: str
    first_name: str
    last_name: str
    phone_number: Optional[str]
    date_of_birth: Optional[date]
    is_admin: bool
    created_at: datetime
    updated_at: datetime
