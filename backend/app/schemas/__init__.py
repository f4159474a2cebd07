from app.schemas.user import UserCreate, UserUpdate, UserResponse, VersionedAction
from app.schemas.screening import (
    CinemaCreate, CinemaResponse, ScreeningCreate, ScreeningUpdate, ScreeningResponse, SeatStateResponse,
)
from app.schemas.reservation import (
    SeatPosition, ReservationCreate, ReservationBatchCreate, ReservationResponse,
    ReservationCancelResponse, ConflictResponse,
)

__all__ = [
    "UserCreate", "UserUpdate", "UserResponse", "VersionedAction",
    "CinemaCreate", "CinemaResponse", "ScreeningCreate", "ScreeningUpdate", "ScreeningResponse",
    "SeatStateResponse",
    "SeatPosition", "ReservationCreate", "ReservationBatchCreate", "ReservationResponse",
    "ReservationCancelResponse", "ConflictResponse",
]
