"""
User records and profile edits.

All edits go through the versioned store: the caller submits the version it
read, and a stale version comes back as a Conflict carrying the values the
other admin saved. Who may do what is decided here from explicit ids, never
from ambient request state.
"""

from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.logging import get_logger
from app.models.user import User
from app.schemas.user import UserCreate, UserUpdate
from app.services.results import (
    DeleteResult,
    Forbidden,
    Inserted,
    InsertResult,
    NotFound,
    Record,
    UpdateResult,
)
from app.services.versioned_store import VersionedRecordStore

logger = get_logger(__name__)

users_store = VersionedRecordStore(User)

NULLABLE_PROFILE_FIELDS = frozenset({"phone_number", "date_of_birth"})


async def get_user(db: AsyncSession, user_id: int) -> Optional[Record]:
    return await users_store.get(db, user_id)


async def list_users(db: AsyncSession) -> list[Record]:
    return await users_store.find(db)


async def is_admin(db: AsyncSession, user_id: Optional[int]) -> bool:
    if user_id is None:
        return False
    actor = await users_store.get(db, user_id)
    return actor is not None and bool(actor["is_admin"])


async def create_user(
    db: AsyncSession,
    user_data: UserCreate,
    actor_id: Optional[int] = None,
) -> InsertResult | Forbidden:
    """
    Register a user. Only admins may create admins, except for the configured
    bootstrap address.
    """
    settings = get_settings()
    email = user_data.email.lower()
    bootstrap = bool(settings.BOOTSTRAP_ADMIN_EMAIL) and email == settings.BOOTSTRAP_ADMIN_EMAIL.lower()
    make_admin = user_data.is_admin or bootstrap

    if user_data.is_admin and not bootstrap and not await is_admin(db, actor_id):
        logger.warning("user_create_forbidden", actor_id=actor_id, email=email)
        return Forbidden("Only admins can create admin users")

    result = await users_store.insert(
        db,
        email=email,
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        phone_number=user_data.phone_number,
        date_of_birth=user_data.date_of_birth,
        is_admin=make_admin,
    )
    if isinstance(result, Inserted):
        logger.info("user_created", user_id=result.record.id, is_admin=make_admin)
    else:
        logger.warning("user_create_rejected", reason="email_exists", email=email)
    return result


async def update_profile(
    db: AsyncSession,
    user_id: int,
    actor_id: int,
    update_data: UserUpdate,
) -> UpdateResult | Forbidden:
    """Edit profile fields. Users edit themselves; admins edit anyone."""
    if actor_id != user_id and not await is_admin(db, actor_id):
        logger.warning("user_update_forbidden", actor_id=actor_id, user_id=user_id)
        return Forbidden("You can only edit your own profile")

    changes = {
        key: value
        for key, value in update_data.model_dump(exclude={"version"}, exclude_unset=True).items()
        if value is not None or key in NULLABLE_PROFILE_FIELDS
    }

    def apply(fields: dict) -> dict:
        fields.update(changes)
        return fields

    return await users_store.conditional_update(db, user_id, update_data.version, apply)


async def toggle_admin(
    db: AsyncSession,
    user_id: int,
    actor_id: int,
    expected_version: str,
) -> UpdateResult | Forbidden:
    if not await is_admin(db, actor_id):
        return Forbidden("Admin privileges required")

    def flip(fields: dict) -> dict:
        fields["is_admin"] = not fields["is_admin"]
        return fields

    result = await users_store.conditional_update(db, user_id, expected_version, flip)
    logger.info("user_admin_toggled", user_id=user_id, actor_id=actor_id, outcome=type(result).__name__)
    return result


async def delete_user(
    db: AsyncSession,
    user_id: int,
    actor_id: int,
    expected_version: str,
) -> DeleteResult | Forbidden:
    """Admins delete non-admin users other than themselves. Reservations cascade."""
    if not await is_admin(db, actor_id):
        return Forbidden("Admin privileges required")
    if actor_id == user_id:
        return Forbidden("You cannot delete your own account")

    target = await users_store.get(db, user_id)
    if target is None:
        return NotFound("user", user_id)
    if target["is_admin"]:
        return Forbidden("Cannot delete admin users")

    return await users_store.conditional_delete(db, user_id, expected_version)
