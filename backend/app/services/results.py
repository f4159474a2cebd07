"""
Explicit outcomes of store and reservation operations.

Expected outcomes (stale version, vanished record, holder mismatch, seat
already taken, seat outside the grid) are returned as values. Exceptions are
kept for infrastructure faults the caller cannot act on.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union


@dataclass(frozen=True)
class Record:
    """Immutable snapshot of a stored row. Callers never see live ORM objects."""

    id: int
    version: str
    fields: Mapping[str, Any]

    def __post_init__(self):
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def __getitem__(self, name: str) -> Any:
        return self.fields[name]

    def as_dict(self) -> dict:
        return {"id": self.id, "version": self.version, **self.fields}


@dataclass(frozen=True)
class SeatKey:
    row: int
    seat: int


@dataclass(frozen=True)
class ConflictReport:
    entity: str
    record_id: int
    attempted_version: str
    current_version: str
    current_fields: Mapping[str, Any]


# --- Versioned store outcomes ------------------------------------------------

@dataclass(frozen=True)
class Inserted:
    record: Record


@dataclass(frozen=True)
class InsertedMany:
    records: tuple


@dataclass(frozen=True)
class Updated:
    record: Record

    @property
    def version(self) -> str:
        return self.record.version


@dataclass(frozen=True)
class Deleted:
    record: Record


@dataclass(frozen=True)
class Conflict:
    report: ConflictReport


@dataclass(frozen=True)
class NotFound:
    entity: str
    record_id: Optional[int] = None


@dataclass(frozen=True)
class UniqueViolation:
    entity: str
    detail: str = ""


@dataclass(frozen=True)
class Forbidden:
    reason: str


# --- Seat reservation outcomes -----------------------------------------------

@dataclass(frozen=True)
class Reserved:
    reservations: tuple

    @property
    def reservation(self) -> Record:
        return self.reservations[0]

    @property
    def reservation_id(self) -> int:
        return self.reservation.id

    @property
    def version(self) -> str:
        return self.reservation.version


@dataclass(frozen=True)
class AlreadyReserved:
    screening_id: int
    seats: tuple = field(default_factory=tuple)
    # None when the winner already released the seat again
    holder_id: Optional[int] = None


@dataclass(frozen=True)
class InvalidSeat:
    row: int
    seat: int
    rows: Optional[int] = None
    seats_per_row: Optional[int] = None


@dataclass(frozen=True)
class SeatState:
    row: int
    seat: int
    is_reserved: bool
    holder_id: Optional[int] = None


@dataclass(frozen=True)
class Cancelled:
    record: Record


UpdateResult = Union[Updated, Conflict, NotFound]
DeleteResult = Union[Deleted, Conflict, NotFound]
InsertResult = Union[Inserted, InsertedMany, UniqueViolation]
ReserveResult = Union[Reserved, AlreadyReserved, InvalidSeat, NotFound]
CancelResult = Union[Cancelled, Conflict, Forbidden, NotFound]
