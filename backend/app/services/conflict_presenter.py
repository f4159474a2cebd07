"""
Turns rejected writes into something a person can act on.

The presenter never retries and never merges. It hands back the server's
current values and version so the client can show "this changed while you
were editing" and let the user decide whether to resubmit.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from app.services.results import AlreadyReserved, Conflict, ConflictReport, NotFound, UniqueViolation

_MODIFIED_MESSAGES = {
    "user": (
        "The user you are trying to edit has been modified by another user. "
        "Your changes have been cancelled. Please review the current values and try again."
    ),
    "reservation": "Reservation was modified by another process. Please refresh and try again.",
    "screening": (
        "The screening has been modified by another user. "
        "Please review the current values and try again."
    ),
}

_DUPLICATE_MESSAGES = {
    "user": "Email already registered",
}

_GONE_MESSAGES = {
    "user": "The user was deleted by another user.",
    "reservation": "The reservation no longer exists. It may have been cancelled already.",
    "screening": "The screening was deleted by another user.",
}


@dataclass(frozen=True)
class ConflictView:
    message: str
    latest_fields: Mapping[str, Any]
    latest_version: Optional[str]

    def as_dict(self) -> dict:
        return {
            "message": self.message,
            "latest_fields": dict(self.latest_fields),
            "latest_version": self.latest_version,
        }


def _frozen(fields: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(fields))


def present(outcome: Union[Conflict, ConflictReport, AlreadyReserved, NotFound, UniqueViolation]) -> ConflictView:
    """Pure: same input, same output, no I/O."""
    if isinstance(outcome, Conflict):
        outcome = outcome.report

    if isinstance(outcome, ConflictReport):
        message = _MODIFIED_MESSAGES.get(
            outcome.entity,
            f"The {outcome.entity} was modified by another user. Please refresh and try again.",
        )
        return ConflictView(
            message=message,
            latest_fields=_frozen(outcome.current_fields),
            latest_version=outcome.current_version,
        )

    if isinstance(outcome, AlreadyReserved):
        if len(outcome.seats) > 1:
            message = "Some of these seats are already reserved. Please select other seats."
        else:
            message = "This seat is already reserved. Please select another seat."
        return ConflictView(
            message=message,
            latest_fields=_frozen({
                "screening_id": outcome.screening_id,
                "holder_id": outcome.holder_id,
                "seats": [{"row": s.row, "seat": s.seat} for s in outcome.seats],
            }),
            latest_version=None,
        )

    if isinstance(outcome, NotFound):
        return ConflictView(
            message=_GONE_MESSAGES.get(outcome.entity, f"The {outcome.entity} no longer exists."),
            latest_fields=_frozen({}),
            latest_version=None,
        )

    if isinstance(outcome, UniqueViolation):
        return ConflictView(
            message=_DUPLICATE_MESSAGES.get(outcome.entity, f"This {outcome.entity} already exists."),
            latest_fields=_frozen({}),
            latest_version=None,
        )

    raise TypeError(f"Cannot present {type(outcome).__name__}")
