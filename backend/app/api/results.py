"""
Translation of service outcomes into HTTP responses.

Services return explicit result values; this is the single place where they
become status codes:

  Conflict / AlreadyReserved / UniqueViolation -> 409 {message, latest_fields, latest_version}
  NotFound                   -> 404
  Forbidden                  -> 403
  InvalidSeat                -> 400
  StorageUnavailableError    -> 503 (never reported as a conflict)
"""

from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from app.core.logging import get_logger
from app.services.conflict_presenter import ConflictView, present
from app.services.results import AlreadyReserved, Conflict, Forbidden, InvalidSeat, NotFound, UniqueViolation
from app.services.versioned_store import StorageUnavailableError

logger = get_logger(__name__)


class ConflictHTTPException(Exception):
    def __init__(self, view: ConflictView):
        self.view = view
        super().__init__(view.message)


def raise_for_outcome(outcome) -> None:
    """Raise the HTTP error for a failure outcome; return silently for anything else."""
    if isinstance(outcome, (Conflict, AlreadyReserved, UniqueViolation)):
        raise ConflictHTTPException(present(outcome))

    if isinstance(outcome, NotFound):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=present(outcome).message)

    if isinstance(outcome, Forbidden):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=outcome.reason)

    if isinstance(outcome, InvalidSeat):
        if outcome.rows is None:
            detail = f"Invalid seat position (row {outcome.row}, seat {outcome.seat})"
        else:
            detail = (
                f"Invalid seat position (row {outcome.row}, seat {outcome.seat}); "
                f"this cinema has {outcome.rows} rows of {outcome.seats_per_row} seats"
            )
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


async def conflict_exception_handler(request: Request, exc: ConflictHTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=jsonable_encoder(exc.view.as_dict()),
    )


async def storage_unavailable_handler(request: Request, exc: StorageUnavailableError) -> JSONResponse:
    logger.error("storage_unavailable", operation=exc.operation, attempts=exc.attempts)
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "The booking service is busy. Please reload and try again."},
        headers={"Retry-After": "1"},
    )
