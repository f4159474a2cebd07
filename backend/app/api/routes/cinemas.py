"""
Cinema hall endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_admin
from app.db.session import get_db
from app.schemas.screening import CinemaCreate, CinemaResponse
from app.services.screening_service import create_cinema, list_cinemas

router = APIRouter(prefix="/cinemas", tags=["Cinemas"])


@router.post("/", response_model=CinemaResponse, status_code=status.HTTP_201_CREATED)
async def create_cinema_endpoint(
    cinema_data: CinemaCreate,
    _: int = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    return await create_cinema(db, cinema_data)


@router.get("/", response_model=list[CinemaResponse])
async def list_cinemas_endpoint(db: AsyncSession = Depends(get_db)):
    return await list_cinemas(db)
