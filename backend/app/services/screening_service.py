"""
Cinemas and screenings.

Screenings are versioned: rescheduling or deleting one names the version the
admin saw. Deleting a screening cascades to its reservations in the database.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger
from app.models.cinema import Cinema
from app.models.screening import Screening
from app.schemas.screening import CinemaCreate, ScreeningCreate, ScreeningUpdate
from app.services.results import (
    DeleteResult,
    Inserted,
    NotFound,
    Record,
    UniqueViolation,
    UpdateResult,
)
from app.services.versioned_store import VersionedRecordStore

logger = get_logger(__name__)

screenings_store = VersionedRecordStore(Screening)


def screening_payload(record: Record, cinema: Cinema) -> dict:
    return {
        **record.as_dict(),
        "cinema_name": cinema.name,
        "rows": cinema.rows,
        "seats_per_row": cinema.seats_per_row,
    }


async def create_cinema(db: AsyncSession, cinema_data: CinemaCreate) -> Cinema:
    cinema = Cinema(
        name=cinema_data.name,
        rows=cinema_data.rows,
        seats_per_row=cinema_data.seats_per_row,
    )
    db.add(cinema)
    await db.flush()
    await db.refresh(cinema)
    await db.commit()

    logger.info("cinema_created", cinema_id=cinema.id, rows=cinema.rows, seats_per_row=cinema.seats_per_row)
    return cinema


async def get_cinema(db: AsyncSession, cinema_id: int) -> Optional[Cinema]:
    result = await db.execute(select(Cinema).where(Cinema.id == cinema_id))
    return result.scalar_one_or_none()


async def list_cinemas(db: AsyncSession) -> list[Cinema]:
    result = await db.execute(select(Cinema).order_by(Cinema.id))
    return list(result.scalars().all())


async def create_screening(db: AsyncSession, screening_data: ScreeningCreate) -> Inserted | NotFound:
    cinema = await get_cinema(db, screening_data.cinema_id)
    if cinema is None:
        return NotFound("cinema", screening_data.cinema_id)

    cinema_id = cinema.id
    result = await screenings_store.insert(
        db,
        cinema_id=cinema_id,
        movie_title=screening_data.movie_title,
        starts_at=screening_data.starts_at,
    )
    if isinstance(result, UniqueViolation):
        # The cinema FK failed: it was removed after the lookup above
        logger.warning("screening_create_rejected", cinema_id=cinema_id, error=result.detail)
        return NotFound("cinema", cinema_id)
    logger.info("screening_created", screening_id=result.record.id, cinema_id=cinema_id)
    return result


async def get_screening(db: AsyncSession, screening_id: int) -> Optional[dict]:
    result = await db.execute(
        select(Screening, Cinema)
        .join(Cinema, Screening.cinema_id == Cinema.id)
        .where(Screening.id == screening_id)
        .execution_options(populate_existing=True)
    )
    row = result.one_or_none()
    if row is None:
        return None
    screening, cinema = row
    return screening_payload(screenings_store.to_record(screening), cinema)


async def list_screenings(db: AsyncSession) -> list[dict]:
    result = await db.execute(
        select(Screening, Cinema)
        .join(Cinema, Screening.cinema_id == Cinema.id)
        .order_by(Screening.starts_at.asc(), Screening.id.asc())
        .execution_options(populate_existing=True)
    )
    return [
        screening_payload(screenings_store.to_record(screening), cinema)
        for screening, cinema in result.all()
    ]


async def update_screening(
    db: AsyncSession,
    screening_id: int,
    update_data: ScreeningUpdate,
) -> UpdateResult:
    changes = update_data.model_dump(exclude={"version"}, exclude_none=True)

    def apply(fields: dict) -> dict:
        fields.update(changes)
        return fields

    return await screenings_store.conditional_update(db, screening_id, update_data.version, apply)


async def delete_screening(db: AsyncSession, screening_id: int, expected_version: str) -> DeleteResult:
    result = await screenings_store.conditional_delete(db, screening_id, expected_version)
    logger.info("screening_delete_attempted", screening_id=screening_id, outcome=type(result).__name__)
    return result
