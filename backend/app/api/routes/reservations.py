"""
Seat reservation endpoints.

The caller's identity comes from the bearer token and is passed to the
service as an explicit holder id.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import reservation_service
from app.api.results import raise_for_outcome
from app.core.security import get_current_user_id
from app.db.session import get_db
from app.schemas.reservation import (
    ConflictResponse,
    ReservationBatchCreate,
    ReservationCancelResponse,
    ReservationCreate,
    ReservationResponse,
)
from app.services.results import SeatKey
from app.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/reservations", tags=["Reservations"])


@router.post(
    "/",
    response_model=ReservationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ConflictResponse}},
)
async def create_reservation(
    reservation_data: ReservationCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Reserve one seat.

    If another request took the seat first, returns 409 with the current
    holder. The request is not retried: pick another seat or refresh the map.
    """
    result = await reservation_service.reserve(
        db,
        reservation_data.screening_id,
        SeatKey(reservation_data.row, reservation_data.seat),
        user_id,
    )
    raise_for_outcome(result)
    return result.reservation.as_dict()


@router.post("/batch", response_model=list[ReservationResponse], status_code=status.HTTP_201_CREATED)
async def create_reservations(
    batch: ReservationBatchCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Reserve several seats at once; if any is taken, none are reserved."""
    result = await reservation_service.reserve_many(
        db,
        batch.screening_id,
        [SeatKey(s.row, s.seat) for s in batch.seats],
        user_id,
    )
    raise_for_outcome(result)
    return [record.as_dict() for record in result.reservations]


@router.get("/", response_model=list[ReservationResponse])
async def list_my_reservations(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    records = await reservation_service.list_for_holder(db, user_id)
    return [record.as_dict() for record in records]


@router.delete("/seat", response_model=ReservationCancelResponse)
async def cancel_reservation_by_seat(
    screening_id: int = Query(...),
    row: int = Query(..., ge=0),
    seat: int = Query(..., ge=0),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Release the caller's own seat without a version (seat-map click-to-toggle)."""
    result = await reservation_service.cancel_seat(db, screening_id, SeatKey(row, seat), user_id)
    raise_for_outcome(result)
    return ReservationCancelResponse(
        message="Reservation cancelled successfully",
        reservation_id=result.record.id,
        status=result.record["status"],
    )


@router.delete(
    "/{reservation_id}",
    response_model=ReservationCancelResponse,
    responses={409: {"model": ConflictResponse}},
)
async def cancel_reservation(
    reservation_id: int,
    version: str = Query(..., min_length=1, max_length=32),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Cancel a reservation at the version the caller read. Someone else's reservation is 403."""
    result = await reservation_service.cancel(db, reservation_id, user_id, version)
    raise_for_outcome(result)
    return ReservationCancelResponse(
        message="Reservation cancelled successfully",
        reservation_id=result.record.id,
        status=result.record["status"],
    )
