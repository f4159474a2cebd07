"""
User endpoints with version-checked profile edits.

Every read returns the record's `version`; edits and deletes send it back.
A stale version answers 409 with the values currently stored.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.results import raise_for_outcome
from app.core.security import get_current_user_id, get_optional_user_id
from app.db.session import get_db
from app.schemas.reservation import ConflictResponse
from app.schemas.user import UserCreate, UserResponse, UserUpdate, VersionedAction
from app.services import user_service
from app.services.results import NotFound
from app.core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter(prefix="/users", tags=["Users"])


@router.post(
    "/",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"model": ConflictResponse}},
)
async def create_user_endpoint(
    user_data: UserCreate,
    actor_id: Optional[int] = Depends(get_optional_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Register a user. Creating an admin requires an admin token."""
    result = await user_service.create_user(db, user_data, actor_id)
    raise_for_outcome(result)
    return result.record.as_dict()


@router.get("/", response_model=list[UserResponse])
async def list_users_endpoint(
    _: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    return [record.as_dict() for record in await user_service.list_users(db)]


@router.get("/{user_id}", response_model=UserResponse)
async def get_user_endpoint(
    user_id: int,
    _: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Current state of a user, including the version to send back with edits."""
    record = await user_service.get_user(db, user_id)
    raise_for_outcome(record or NotFound("user", user_id))
    return record.as_dict()


@router.put("/{user_id}", response_model=UserResponse, responses={409: {"model": ConflictResponse}})
async def update_user_endpoint(
    user_id: int,
    update_data: UserUpdate,
    actor_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """
    Edit a profile based on the version the caller read.

    409 means someone saved first: the body carries their values and the new
    version. Nothing is merged; resubmit with the new version to overwrite.
    """
    result = await user_service.update_profile(db, user_id, actor_id, update_data)
    raise_for_outcome(result)
    return result.record.as_dict()


@router.post("/{user_id}/toggle-admin", response_model=UserResponse)
async def toggle_admin_endpoint(
    user_id: int,
    action: VersionedAction,
    actor_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    result = await user_service.toggle_admin(db, user_id, actor_id, action.version)
    raise_for_outcome(result)
    return result.record.as_dict()


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user_endpoint(
    user_id: int,
    version: str = Query(..., min_length=1, max_length=32),
    actor_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
):
    """Delete a non-admin user. Their reservations are released with them."""
    result = await user_service.delete_user(db, user_id, actor_id, version)
    raise_for_outcome(result)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
