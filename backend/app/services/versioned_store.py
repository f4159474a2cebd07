"""
Versioned record store with conditional writes.

CONCURRENCY STRATEGY: Optimistic Concurrency Control
=====================================================

Problem:
  Two admins open the same user profile. Both see version v1, both submit.
  With a plain read-modify-write, the second save silently erases the first.

Solution:
  Every versioned row carries an opaque `version` token, regenerated on each
  successful write. A write names the version it was based on:

  UPDATE users SET ..., version = :new_token
  WHERE id = :id AND version = :expected

  The WHERE clause makes check-and-write a single atomic statement. If zero
  rows match, the row either vanished (NotFound) or moved on (Conflict), and
  we re-read it so the caller can see what changed.

  Nothing is retried on Conflict: whether to re-apply an edit on top of
  someone else's is the user's decision. The only automatic retries are for
  transient storage faults (lock timeouts, deadlocks, serialization failures),
  which always leave the transaction rolled back, and every retry starts with
  a fresh read.
"""

import asyncio
from typing import Any, Callable, Generic, Iterable, Optional, TypeVar

from sqlalchemy import delete, inspect as sa_inspect, select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.logging import get_logger
from app.core.metrics import (
    record_version_conflict,
    storage_exhausted,
    storage_retries,
    store_operation_latency,
)
from app.db.base import new_version_token
from app.services.results import (
    Conflict,
    ConflictReport,
    Deleted,
    DeleteResult,
    Inserted,
    InsertedMany,
    InsertResult,
    NotFound,
    Record,
    UniqueViolation,
    Updated,
    UpdateResult,
)

logger = get_logger(__name__)

ModelT = TypeVar("ModelT")
Mutator = Callable[[dict], Optional[dict]]

# serialization_failure, deadlock_detected, lock_not_available
TRANSIENT_SQLSTATES = frozenset({"40001", "40P01", "55P03"})


class StorageUnavailableError(Exception):
    """Raised when transient storage faults persist past the retry budget."""

    def __init__(self, operation: str, attempts: int):
        self.operation = operation
        self.attempts = attempts
        super().__init__(f"Storage unavailable for {operation} after {attempts} attempts")


def is_transient(exc: DBAPIError) -> bool:
    """True for faults that guarantee the statement was rolled back."""
    if isinstance(exc, IntegrityError):
        return False
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is None and orig is not None:
        code = getattr(orig.__cause__, "sqlstate", None)
    if code in TRANSIENT_SQLSTATES:
        return True
    return isinstance(exc, OperationalError) and "database is locked" in str(orig).lower()


async def run_with_retry(db: AsyncSession, operation: Callable, *, label: str):
    """
    Run `operation` and retry it on transient storage faults.

    The session is rolled back before each retry. Any other database error
    propagates unchanged.
    """
    settings = get_settings()
    attempts = max(1, settings.STORAGE_MAX_ATTEMPTS)

    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except DBAPIError as exc:
            await db.rollback()
            if not is_transient(exc):
                raise
            logger.warning(
                "storage_retry",
                operation=label,
                attempt=attempt,
                error=str(exc.orig),
            )
            if attempt < attempts:
                storage_retries.inc()
                await asyncio.sleep(settings.STORAGE_RETRY_BACKOFF_SECONDS * 2 ** (attempt - 1))

    storage_exhausted.inc()
    logger.error("storage_retries_exhausted", operation=label, attempts=attempts)
    raise StorageUnavailableError(label, attempts)


class VersionedRecordStore(Generic[ModelT]):
    """Conditional reads and writes over one versioned table."""

    def __init__(self, model: type, entity: Optional[str] = None):
        self.model = model
        self.entity = entity or model.__name__.lower()
        self.columns = tuple(attr.key for attr in sa_inspect(model).column_attrs)
        self.writable = frozenset(c for c in self.columns if c not in ("id", "version"))

    def to_record(self, obj) -> Record:
        fields = {key: getattr(obj, key) for key in self.columns if key not in ("id", "version")}
        return Record(id=obj.id, version=obj.version, fields=fields)

    async def _load(self, db: AsyncSession, record_id: int):
        # populate_existing: never trust identity-map state for version checks
        result = await db.execute(
            select(self.model)
            .where(self.model.id == record_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    def _conflict(self, current, attempted_version: str) -> Conflict:
        record_version_conflict(self.entity)
        logger.info(
            "record_version_conflict",
            entity=self.entity,
            record_id=current.id,
            attempted_version=attempted_version,
            current_version=current.version,
        )
        snapshot = self.to_record(current)
        return Conflict(ConflictReport(
            entity=self.entity,
            record_id=snapshot.id,
            attempted_version=attempted_version,
            current_version=snapshot.version,
            current_fields=dict(snapshot.fields),
        ))

    async def _stale(self, db: AsyncSession, record_id: int, attempted_version: str):
        """Explain a guarded write that matched zero rows."""
        current = await self._load(db, record_id)
        if current is None:
            logger.info("record_gone", entity=self.entity, record_id=record_id)
            return NotFound(self.entity, record_id)
        return self._conflict(current, attempted_version)

    def _check_columns(self, names: Iterable[str]) -> None:
        unknown = set(names) - self.writable
        if unknown:
            raise ValueError(f"Unknown or read-only {self.entity} fields: {sorted(unknown)}")

    async def get(self, db: AsyncSession, record_id: int) -> Optional[Record]:
        """Latest committed state of a record, or None."""
        async def op():
            obj = await self._load(db, record_id)
            return self.to_record(obj) if obj is not None else None

        with store_operation_latency.labels(operation="get").time():
            return await run_with_retry(db, op, label=f"get_{self.entity}")

    async def find(self, db: AsyncSession, *criteria: Any, order_by: Any = None) -> list[Record]:
        query = select(self.model).where(*criteria).execution_options(populate_existing=True)
        if order_by is None:
            order_by = [self.model.id]
        elif not isinstance(order_by, (list, tuple)):
            order_by = [order_by]
        query = query.order_by(*order_by)

        async def op():
            result = await db.execute(query)
            return [self.to_record(obj) for obj in result.scalars().all()]

        with store_operation_latency.labels(operation="get").time():
            return await run_with_retry(db, op, label=f"find_{self.entity}")

    async def insert(self, db: AsyncSession, **fields: Any) -> InsertResult:
        """Insert one record with a fresh version. Constraint violations are returned, not raised."""
        result = await self.insert_many(db, [fields])
        if isinstance(result, InsertedMany):
            return Inserted(result.records[0])
        return result

    async def insert_many(self, db: AsyncSession, rows: list[dict]) -> InsertResult:
        """Insert several records in one transaction: all of them or none."""
        for row in rows:
            self._check_columns(row)

        async def op():
            objs = [self.model(**row, version=new_version_token()) for row in rows]
            db.add_all(objs)
            try:
                await db.flush()
            except IntegrityError as exc:
                await db.rollback()
                logger.info("record_insert_rejected", entity=self.entity, error=str(exc.orig))
                return UniqueViolation(self.entity, str(exc.orig))
            for obj in objs:
                await db.refresh(obj)
            records = tuple(self.to_record(obj) for obj in objs)
            await db.commit()
            return InsertedMany(records)

        with store_operation_latency.labels(operation="insert").time():
            return await run_with_retry(db, op, label=f"insert_{self.entity}")

    async def conditional_update(
        self,
        db: AsyncSession,
        record_id: int,
        expected_version: str,
        mutator: Mutator,
    ) -> UpdateResult:
        """
        Apply `mutator` only if the record is still at `expected_version`.

        The mutator receives a copy of the current fields and returns the
        mutated copy (or mutates it in place and returns None). Only changed
        fields are written; the version is always regenerated.
        """
        async def op():
            current = await self._load(db, record_id)
            if current is None:
                return NotFound(self.entity, record_id)
            if current.version != expected_version:
                # Early reject; the guarded UPDATE below is what enforces it
                return self._conflict(current, expected_version)

            before = dict(self.to_record(current).fields)
            draft = dict(before)
            mutated = mutator(draft)
            after = draft if mutated is None else dict(mutated)
            self._check_columns(after)
            changes = {key: value for key, value in after.items() if before.get(key) != value}

            new_version = new_version_token()
            result = await db.execute(
                update(self.model)
                .where(self.model.id == record_id, self.model.version == expected_version)
                .values(**changes, version=new_version)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await db.rollback()
                return await self._stale(db, record_id, expected_version)

            fresh = await self._load(db, record_id)
            record = self.to_record(fresh)
            await db.commit()
            logger.info(
                "record_updated",
                entity=self.entity,
                record_id=record_id,
                changed=sorted(changes),
            )
            return Updated(record)

        with store_operation_latency.labels(operation="update").time():
            return await run_with_retry(db, op, label=f"update_{self.entity}")

    async def conditional_delete(
        self,
        db: AsyncSession,
        record_id: int,
        expected_version: str,
    ) -> DeleteResult:
        """Delete the record only if it is still at `expected_version`."""
        async def op():
            current = await self._load(db, record_id)
            if current is None:
                return NotFound(self.entity, record_id)
            if current.version != expected_version:
                return self._conflict(current, expected_version)

            snapshot = self.to_record(current)
            result = await db.execute(
                delete(self.model)
                .where(self.model.id == record_id, self.model.version == expected_version)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await db.rollback()
                return await self._stale(db, record_id, expected_version)

            await db.commit()
            db.expunge(current)
            logger.info("record_deleted", entity=self.entity, record_id=record_id)
            return Deleted(snapshot)

        with store_operation_latency.labels(operation="delete").time():
            return await run_with_retry(db, op, label=f"delete_{self.entity}")
