"""
Tests for turning rejected writes into user-facing conflict views.
"""

import pytest

from app.services.conflict_presenter import present
from app.services.results import (
    AlreadyReserved,
    Conflict,
    ConflictReport,
    Forbidden,
    NotFound,
    SeatKey,
    UniqueViolation,
)


def user_conflict():
    return Conflict(ConflictReport(
        entity="user",
        record_id=7,
        attempted_version="a" * 32,
        current_version="b" * 32,
        current_fields={"first_name": "Alicia", "last_name": "Liddell"},
    ))


def test_stale_user_edit_shows_latest_values():
    view = present(user_conflict())

    assert view.message.startswith("The user you are trying to edit has been modified by another user.")
    assert view.latest_version == "b" * 32
    assert view.latest_fields["first_name"] == "Alicia"


def test_presenting_is_repeatable():
    outcome = user_conflict()
    assert present(outcome) == present(outcome)
    assert present(outcome).as_dict() == present(outcome.report).as_dict()


def test_view_cannot_be_edited():
    view = present(user_conflict())
    with pytest.raises(TypeError):
        view.latest_fields["first_name"] = "Mallory"


def test_taken_seat_message_names_holder():
    view = present(AlreadyReserved(screening_id=1, seats=(SeatKey(2, 3),), holder_id=5))

    assert view.message == "This seat is already reserved. Please select another seat."
    assert view.latest_version is None
    assert view.as_dict()["latest_fields"] == {
        "screening_id": 1,
        "holder_id": 5,
        "seats": [{"row": 2, "seat": 3}],
    }


def test_several_taken_seats():
    view = present(AlreadyReserved(screening_id=1, seats=(SeatKey(0, 0), SeatKey(0, 1))))

    assert view.message.startswith("Some of these seats are already reserved.")
    assert view.latest_fields["holder_id"] is None


def test_deleted_record():
    view = present(NotFound("user", 3))

    assert view.message == "The user was deleted by another user."
    assert view.latest_fields == {}
    assert view.latest_version is None


def test_unknown_entity_gets_generic_message():
    report = ConflictReport("cinema", 1, "a", "b", {"name": "Grand"})

    assert "cinema" in present(report).message


def test_non_conflict_outcomes_are_rejected():
    with pytest.raises(TypeError):
        present(Forbidden("nope"))


def test_duplicate_record_uses_conflict_shape():
    view = present(UniqueViolation("user", "UNIQUE constraint failed: users.email"))

    assert view.as_dict() == {
        "message": "Email already registered",
        "latest_fields": {},
        "latest_version": None,
    }
