import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_service.config import settings
from rbac_service.db import get_db
from rbac_service.schemas.common_schemas import ErrorResponse, PageResponse
from rbac_service.schemas.projections import project_page, project_role
from rbac_service.schemas.role_schemas import RoleCreate, RoleResponse, RoleStats, RoleUpdate
from rbac_service.services import role_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/roles",
    tags=["Admin - Roles"],
)


@router.get(
    "",
    response_model=PageResponse[RoleResponse],
    summary="List roles",
)
async def list_roles(
    include_inactive: bool = Query(False, alias="includeInactive"),
    search: Optional[str] = Query(None, description="Case-insensitive match on the role name"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100, alias="pageSize"),
    db: AsyncSession = Depends(get_db),
):
    """
    List roles, newest first, each with its resolved permissions.

    - **includeInactive**: Include soft-deleted roles
    - **search**: Substring to look for in role names
    """
    result = await role_service.list_roles(
        db, include_inactive=include_inactive, search=search, page=page, page_size=page_size
    )
    return project_page(result, project_role)


@router.get("/stats", response_model=RoleStats, summary="Role statistics")
async def get_role_stats(db: AsyncSession = Depends(get_db)):
    return await role_service.get_stats(db)


@router.get(
    "/name/{name}",
    response_model=RoleResponse,
    summary="Get a role by name",
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
async def get_role_by_name(
    name: str = Path(..., description="Role name (case-insensitive)"),
    db: AsyncSession = Depends(get_db),
):
    role = await role_service.get_role_by_name(db, name)
    return project_role(role)


@router.get(
    "/{role_id}",
    response_model=RoleResponse,
    summary="Get a specific role by ID",
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
async def get_role(
    role_id: uuid.UUID = Path(..., description="The ID of the role to retrieve"),
    db: AsyncSession = Depends(get_db),
):
    role = await role_service.get_role(db, role_id)
    return project_role(role)


@router.post(
    "",
    response_model=RoleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new role",
    responses={
        status.HTTP_201_CREATED: {"model": RoleResponse},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse},
    },
)
async def create_role(
    role_in: RoleCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Create a new role.

    - **name**: Unique name for the role (stored lowercase)
    - **description**: What the role is for
    - **permissions**: Optional initial permission IDs
    """
    logger.info(f"Attempting to create role: {role_in.name}")
    role = await role_service.create_role(db, role_in)
    return project_role(role)


@router.patch(
    "/{role_id}",
    response_model=RoleResponse,
    summary="Update a role",
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse},
    },
)
async def update_role(
    role_in: RoleUpdate,
    role_id: uuid.UUID = Path(..., description="The ID of the role to update"),
    db: AsyncSession = Depends(get_db),
):
    """
    Update an existing role; omitted fields are left unchanged.

    - **name**: New unique name for the role
    - **description**: New description
    - **isActive**: Activate or deactivate the role
    """
    role = await role_service.update_role(db, role_id, role_in)
    return project_role(role)


@router.delete(
    "/{role_id}",
    response_model=RoleResponse,
    summary="Deactivate a role",
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
async def soft_delete_role(
    role_id: uuid.UUID = Path(..., description="The ID of the role to deactivate"),
    db: AsyncSession = Depends(get_db),
):
    role = await role_service.soft_delete_role(db, role_id)
    return project_role(role)


@router.post(
    "/{role_id}/restore",
    response_model=RoleResponse,
    summary="Reactivate a soft-deleted role",
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
async def restore_role(
    role_id: uuid.UUID = Path(..., description="The ID of the role to restore"),
    db: AsyncSession = Depends(get_db),
):
    role = await role_service.restore_role(db, role_id)
    return project_role(role)


@router.delete(
    "/{role_id}/permanent",
    response_model=RoleResponse,
    summary="Permanently delete a role",
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
async def delete_role(
    role_id: uuid.UUID = Path(..., description="The ID of the role to delete"),
    db: AsyncSession = Depends(get_db),
):
    """
    Permanently delete a role along with its permission set and return its
    last state. Users holding the role keep a reference that no longer resolves.
    """
    logger.warning(f"Permanently deleting role {role_id}")
    role = await role_service.delete_role(db, role_id)
    return project_role(role)
