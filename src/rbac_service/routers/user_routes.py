import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_service.config import settings
from rbac_service.db import get_db
from rbac_service.schemas.common_schemas import ErrorResponse, PageResponse
from rbac_service.schemas.projections import project_page, project_user
from rbac_service.schemas.user_schemas import (
    UserCreate,
    UserListFilters,
    UserResponse,
    UserStats,
    UserUpdate,
)
from rbac_service.services import user_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["Admin - Users"],
)

NOT_FOUND = {status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}}


@router.get(
    "",
    response_model=PageResponse[UserResponse],
    summary="List users",
)
async def list_users(
    search: Optional[str] = Query(None, description="Substring of username or email"),
    role: Optional[str] = Query(None, description="Role ID or role name"),
    email_verified: Optional[bool] = Query(None, alias="emailVerified"),
    is_active: Optional[bool] = Query(None, alias="isActive"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100, alias="pageSize"),
    db: AsyncSession = Depends(get_db),
):
    """
    List users, newest first, with their roles and each role's permissions.

    - **search**: Case-insensitive match on username or email
    - **role**: Only users holding this role; unknown role names give an empty page
    - **emailVerified** / **isActive**: Exact match when given
    """
    filters = UserListFilters(
        search=search, role=role, email_verified=email_verified, is_active=is_active
    )
    result = await user_service.list_users(db, filters, page=page, page_size=page_size)
    return project_page(result, project_user)


@router.get("/stats", response_model=UserStats, summary="User statistics")
async def get_user_stats(db: AsyncSession = Depends(get_db)):
    return await user_service.get_stats(db)


@router.get(
    "/email/{email}",
    response_model=UserResponse,
    summary="Get a user by email",
    responses=NOT_FOUND,
)
async def get_user_by_email(
    email: str = Path(..., description="Email address (case-insensitive)"),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.get_user_by_email(db, email)
    return project_user(user)


@router.get(
    "/username/{username}",
    response_model=UserResponse,
    summary="Get a user by username",
    responses=NOT_FOUND,
)
async def get_user_by_username(
    username: str = Path(...),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.get_user_by_username(db, username)
    return project_user(user)


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    summary="Get a user by ID",
    responses=NOT_FOUND,
)
async def get_user(
    user_id: uuid.UUID = Path(..., description="The ID of the user"),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.get_user(db, user_id)
    return project_user(user)


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new user",
    responses={status.HTTP_409_CONFLICT: {"model": ErrorResponse}},
)
async def create_user(
    user_in: UserCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Create a new user. The password is hashed before it is stored.

    - **username**: Letters, digits and underscores, 3 to 30 characters
    - **email**: Unique email address
    - **password**: 8 to 128 characters
    - **roles**: Optional initial role IDs
    """
    logger.info(f"Attempting to create user: {user_in.username}")
    user = await user_service.create_user(db, user_in)
    return project_user(user)


@router.patch(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update a user",
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse},
    },
)
async def update_user(
    user_in: UserUpdate,
    user_id: uuid.UUID = Path(..., description="The ID of the user to update"),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.update_user(db, user_id, user_in)
    return project_user(user)


@router.delete(
    "/{user_id}",
    response_model=UserResponse,
    summary="Deactivate a user",
    responses=NOT_FOUND,
)
async def soft_delete_user(
    user_id: uuid.UUID = Path(..., description="The ID of the user to deactivate"),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.soft_delete_user(db, user_id)
    return project_user(user)


@router.post(
    "/{user_id}/restore",
    response_model=UserResponse,
    summary="Reactivate a soft-deleted user",
    responses=NOT_FOUND,
)
async def restore_user(
    user_id: uuid.UUID = Path(..., description="The ID of the user to restore"),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.restore_user(db, user_id)
    return project_user(user)


@router.delete(
    "/{user_id}/permanent",
    response_model=UserResponse,
    summary="Permanently delete a user",
    responses=NOT_FOUND,
)
async def delete_user(
    user_id: uuid.UUID = Path(..., description="The ID of the user to delete"),
    db: AsyncSession = Depends(get_db),
):
    logger.warning(f"Permanently deleting user {user_id}")
    user = await user_service.delete_user(db, user_id)
    return project_user(user)


@router.post(
    "/{user_id}/verify-email",
    response_model=UserResponse,
    summary="Mark a user's email as verified",
    responses=NOT_FOUND,
)
async def verify_email(
    user_id: uuid.UUID = Path(..., description="The ID of the user"),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.verify_email(db, user_id)
    return project_user(user)


@router.post(
    "/{user_id}/last-login",
    response_model=UserResponse,
    summary="Record a login for a user",
    responses=NOT_FOUND,
)
async def record_login(
    user_id: uuid.UUID = Path(..., description="The ID of the user"),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.record_login(db, user_id)
    return project_user(user)
