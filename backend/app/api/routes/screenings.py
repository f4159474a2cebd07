"""
Screening endpoints, seat maps, and the per-screening reservation list.
"""

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_admin, reservation_service
from app.api.results import raise_for_outcome
from app.db.session import get_db
from app.schemas.reservation import ReservationResponse
from app.schemas.screening import ScreeningCreate, ScreeningResponse, ScreeningUpdate, SeatStateResponse
from app.services import screening_service
from app.services.cache_service import get_cached_screenings, invalidate_screening_cache, set_cached_screenings
from app.services.results import NotFound
from app.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/screenings", tags=["Screenings"])


@router.post("/", response_model=ScreeningResponse, status_code=status.HTTP_201_CREATED)
async def create_screening_endpoint(
    screening_data: ScreeningCreate,
    _: int = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await screening_service.create_screening(db, screening_data)
    raise_for_outcome(result)
    await invalidate_screening_cache()
    return await screening_service.get_screening(db, result.record.id)


@router.get("/", response_model=list[ScreeningResponse])
async def list_screenings_endpoint(db: AsyncSession = Depends(get_db)):
    """
    List screenings. Cached in Redis; invalidated on any screening change.
    Seat availability is deliberately not part of this payload.
    """
    cached = await get_cached_screenings()
    if cached is not None:
        logger.info("screenings_list_cache_hit")
        return cached

    screenings = await screening_service.list_screenings(db)
    payload = [ScreeningResponse.model_validate(s).model_dump(mode="json") for s in screenings]
    await set_cached_screenings(payload)
    return payload


@router.get("/{screening_id}", response_model=ScreeningResponse)
async def get_screening_endpoint(screening_id: int, db: AsyncSession = Depends(get_db)):
    screening = await screening_service.get_screening(db, screening_id)
    raise_for_outcome(screening or NotFound("screening", screening_id))
    return screening


@router.put("/{screening_id}", response_model=ScreeningResponse)
async def update_screening_endpoint(
    screening_id: int,
    update_data: ScreeningUpdate,
    _: int = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    result = await screening_service.update_screening(db, screening_id, update_data)
    raise_for_outcome(result)
    await invalidate_screening_cache()
    return await screening_service.get_screening(db, screening_id)


@router.delete("/{screening_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_screening_endpoint(
    screening_id: int,
    version: str = Query(..., min_length=1, max_length=32),
    _: int = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete a screening at the version the admin saw. Its reservations go with it."""
    result = await screening_service.delete_screening(db, screening_id, version)
    raise_for_outcome(result)
    await invalidate_screening_cache()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{screening_id}/seats", response_model=list[SeatStateResponse])
async def seat_map_endpoint(screening_id: int, db: AsyncSession = Depends(get_db)):
    """
    Point-in-time seat map. It can be stale the moment it is returned; a 409
    on reservation is the signal to fetch it again.
    """
    seats = await reservation_service.seat_map(db, screening_id)
    raise_for_outcome(seats)
    return seats


@router.get("/{screening_id}/reservations", response_model=list[ReservationResponse])
async def screening_reservations_endpoint(screening_id: int, db: AsyncSession = Depends(get_db)):
    records = await reservation_service.list_for_screening(db, screening_id)
    return [record.as_dict() for record in records]
