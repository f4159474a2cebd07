"""
Seat reservation with double-booking prevention.

CONCURRENCY STRATEGY: Unique Seat Key, Version-Guarded Cancellation
====================================================================

Problem:
  Two users click the same free seat at the same moment. Both read the seat
  map, both see the seat free, both insert a reservation.

Why version checks are not enough here:
  A version token protects a row that already exists. At creation time there
  is no row yet, so two readers of "seat is free" have nothing to compare.

Solution:
  1. Reject seats outside the absolute grid before touching storage, then
     validate against the cinema's rows x seats_per_row.
  2. Early reject: if a reservation already sits on the seat, answer
     AlreadyReserved without attempting a write.
  3. INSERT the reservation. The UNIQUE (screening_id, row, seat) index is the
     arbiter: exactly one concurrent INSERT survives, every other one gets an
     IntegrityError, which we translate into AlreadyReserved(winner).
  4. Cancellation deletes the row with `WHERE id = :id AND version = :v`,
     so a stale client cannot cancel a reservation it never saw.

  Transient storage faults are retried by the store; AlreadyReserved never is.
"""

from typing import Optional, Sequence

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import record_cancellation, record_reservation_attempt
from app.models.cinema import Cinema
from app.models.reservation import Reservation, ReservationStatus
from app.models.screening import Screening
from app.models.user import User
from app.services.results import (
    AlreadyReserved,
    CancelResult,
    Cancelled,
    Conflict,
    Deleted,
    Forbidden,
    InsertedMany,
    InvalidSeat,
    NotFound,
    Record,
    Reserved,
    ReserveResult,
    SeatKey,
    SeatState,
)
from app.services.versioned_store import VersionedRecordStore, run_with_retry

logger = get_logger(__name__)


class SeatReservationService:
    """Reserves, cancels and maps seats; double booking is stopped by the unique seat index."""

    def __init__(self, max_grid_dimension: Optional[int] = None):
        self.reservations = VersionedRecordStore(Reservation)
        self.users = VersionedRecordStore(User)
        self.max_grid_dimension = max_grid_dimension or get_settings().MAX_GRID_DIMENSION

    def _outside_absolute_grid(self, key: SeatKey) -> bool:
        return not (0 <= key.row < self.max_grid_dimension and 0 <= key.seat < self.max_grid_dimension)

    async def _grid(self, db: AsyncSession, screening_id: int) -> Optional[tuple[int, int]]:
        """(rows, seats_per_row) of the screening's cinema, or None if the screening is gone."""
        query = (
            select(Cinema.rows, Cinema.seats_per_row)
            .join(Screening, Screening.cinema_id == Cinema.id)
            .where(Screening.id == screening_id)
        )

        async def op():
            row = (await db.execute(query)).one_or_none()
            return tuple(row) if row is not None else None

        return await run_with_retry(db, op, label="load_screening_grid")

    async def _holders(self, db: AsyncSession, screening_id: int, keys: Sequence[SeatKey]) -> dict:
        """Current holder of each requested seat that is already taken."""
        records = await self.reservations.find(
            db,
            Reservation.screening_id == screening_id,
            or_(*(and_(Reservation.row == k.row, Reservation.seat == k.seat) for k in keys)),
        )
        return {SeatKey(r["row"], r["seat"]): r["user_id"] for r in records}

    def _already_reserved(self, screening_id: int, keys: Sequence[SeatKey], taken: dict) -> AlreadyReserved:
        seats = tuple(k for k in keys if k in taken)
        record_reservation_attempt("already_reserved")
        logger.info(
            "reservation_conflict",
            screening_id=screening_id,
            seats=[(k.row, k.seat) for k in seats],
            holder_id=taken[seats[0]],
        )
        return AlreadyReserved(screening_id=screening_id, seats=seats, holder_id=taken[seats[0]])

    async def reserve(
        self,
        db: AsyncSession,
        screening_id: int,
        seat_key: SeatKey,
        holder_id: int,
    ) -> ReserveResult:
        """Reserve one seat for `holder_id`."""
        return await self.reserve_many(db, screening_id, [seat_key], holder_id)

    async def reserve_many(
        self,
        db: AsyncSession,
        screening_id: int,
        seat_keys: Sequence[SeatKey],
        holder_id: int,
    ) -> ReserveResult:
        """
        Reserve several seats in one transaction: all of them or none.

        Returns AlreadyReserved listing every requested seat that is taken.
        """
        keys = list(dict.fromkeys(seat_keys))
        if not keys:
            raise ValueError("At least one seat is required")

        for key in keys:
            if self._outside_absolute_grid(key):
                record_reservation_attempt("invalid_seat")
                return InvalidSeat(row=key.row, seat=key.seat)

        grid = await self._grid(db, screening_id)
        if grid is None:
            record_reservation_attempt("not_found")
            return NotFound("screening", screening_id)

        rows, seats_per_row = grid
        for key in keys:
            if not (0 <= key.row < rows and 0 <= key.seat < seats_per_row):
                record_reservation_attempt("invalid_seat")
                logger.info(
                    "reservation_invalid_seat",
                    screening_id=screening_id,
                    row=key.row,
                    seat=key.seat,
                    rows=rows,
                    seats_per_row=seats_per_row,
                )
                return InvalidSeat(row=key.row, seat=key.seat, rows=rows, seats_per_row=seats_per_row)

        taken = await self._holders(db, screening_id, keys)
        if taken:
            return self._already_reserved(screening_id, keys, taken)

        result = await self.reservations.insert_many(db, [
            {
                "screening_id": screening_id,
                "user_id": holder_id,
                "row": key.row,
                "seat": key.seat,
                "status": ReservationStatus.CONFIRMED.value,
            }
            for key in keys
        ])

        if isinstance(result, InsertedMany):
            record_reservation_attempt("reserved")
            logger.info(
                "reservation_created",
                screening_id=screening_id,
                holder_id=holder_id,
                reservation_ids=[r.id for r in result.records],
            )
            return Reserved(result.records)

        # Lost the race between the early check and the INSERT
        taken = await self._holders(db, screening_id, keys)
        if taken:
            return self._already_reserved(screening_id, keys, taken)
        if await self._grid(db, screening_id) is None:
            record_reservation_attempt("not_found")
            return NotFound("screening", screening_id)
        if await self.users.get(db, holder_id) is None:
            record_reservation_attempt("not_found")
            return NotFound("user", holder_id)

        # The winner released the seat before we could look; the caller re-fetches
        record_reservation_attempt("already_reserved")
        logger.info("reservation_contested", screening_id=screening_id, holder_id=holder_id)
        return AlreadyReserved(screening_id=screening_id, seats=tuple(keys), holder_id=None)

    async def cancel(
        self,
        db: AsyncSession,
        reservation_id: int,
        holder_id: int,
        expected_version: str,
    ) -> CancelResult:
        """Cancel a reservation the caller holds, if it is still at `expected_version`."""
        current = await self.reservations.get(db, reservation_id)
        if current is None:
            record_cancellation("not_found")
            return NotFound("reservation", reservation_id)

        if current["user_id"] != holder_id:
            record_cancellation("forbidden")
            logger.warning(
                "reservation_cancel_forbidden",
                reservation_id=reservation_id,
                holder_id=holder_id,
            )
            return Forbidden("Reservation belongs to another user")

        result = await self.reservations.conditional_delete(db, reservation_id, expected_version)
        return self._cancel_outcome(result)

    async def cancel_seat(
        self,
        db: AsyncSession,
        screening_id: int,
        seat_key: SeatKey,
        holder_id: int,
    ) -> CancelResult:
        """Release the caller's own reservation on a seat, at whatever version it is."""
        mine = await self.reservations.find(
            db,
            Reservation.screening_id == screening_id,
            Reservation.row == seat_key.row,
            Reservation.seat == seat_key.seat,
            Reservation.user_id == holder_id,
        )
        if not mine:
            record_cancellation("not_found")
            return NotFound("reservation")

        result = await self.reservations.conditional_delete(db, mine[0].id, mine[0].version)
        return self._cancel_outcome(result)

    def _cancel_outcome(self, result) -> CancelResult:
        if isinstance(result, Deleted):
            record_cancellation("cancelled")
            fields = {**result.record.fields, "status": ReservationStatus.CANCELLED.value}
            logger.info(
                "reservation_cancelled",
                reservation_id=result.record.id,
                screening_id=fields["screening_id"],
                holder_id=fields["user_id"],
            )
            return Cancelled(Record(id=result.record.id, version=result.record.version, fields=fields))
        record_cancellation("conflict" if isinstance(result, Conflict) else "not_found")
        return result

    async def seat_map(self, db: AsyncSession, screening_id: int):
        """
        Point-in-time snapshot of every seat, row-major.

        Not consistent with concurrent reservations; callers re-fetch after a
        409 instead of trusting an older map.
        """
        grid = await self._grid(db, screening_id)
        if grid is None:
            return NotFound("screening", screening_id)

        rows, seats_per_row = grid
        held = {
            (r["row"], r["seat"]): r["user_id"]
            for r in await self.list_for_screening(db, screening_id)
        }
        return [
            SeatState(
                row=row,
                seat=seat,
                is_reserved=(row, seat) in held,
                holder_id=held.get((row, seat)),
            )
            for row in range(rows)
            for seat in range(seats_per_row)
        ]

    async def list_for_screening(self, db: AsyncSession, screening_id: int) -> list[Record]:
        return await self.reservations.find(
            db,
            Reservation.screening_id == screening_id,
            order_by=[Reservation.row, Reservation.seat],
        )

    async def list_for_holder(self, db: AsyncSession, holder_id: int) -> list[Record]:
        return await self.reservations.find(
            db,
            Reservation.user_id == holder_id,
            order_by=[Reservation.created_at.desc(), Reservation.id.desc()],
        )
