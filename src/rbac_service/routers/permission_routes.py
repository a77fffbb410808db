import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_service.config import settings
from rbac_service.db import get_db
from rbac_service.schemas.common_schemas import ErrorResponse, ExistsResponse, PageResponse
from rbac_service.schemas.permission_schemas import (
    ActionResourceMap,
    PermissionBulkCreate,
    PermissionCreate,
    PermissionResponse,
    PermissionStats,
    PermissionUpdate,
)
from rbac_service.schemas.projections import project_page, project_permission
from rbac_service.services import permission_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/permissions",
    tags=["Admin - Permissions"],
)

NOT_FOUND = {status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}}


@router.get(
    "",
    response_model=PageResponse[PermissionResponse],
    summary="List permissions",
)
async def list_permissions(
    include_inactive: bool = Query(False, alias="includeInactive"),
    page: int = Query(1, ge=1),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=100, alias="pageSize"),
    db: AsyncSession = Depends(get_db),
):
    """
    List permissions ordered by action, then resource.

    - **includeInactive**: Include soft-deleted permissions
    - **page** / **pageSize**: Pagination
    """
    result = await permission_service.list_permissions(
        db, include_inactive=include_inactive, page=page, page_size=page_size
    )
    return project_page(result, project_permission)


@router.get("/stats", response_model=PermissionStats, summary="Permission statistics")
async def get_permission_stats(db: AsyncSession = Depends(get_db)):
    return await permission_service.get_stats(db)


@router.get("/actions", response_model=List[str], summary="Distinct actions of active permissions")
async def list_unique_actions(db: AsyncSession = Depends(get_db)):
    return await permission_service.unique_actions(db)


@router.get(
    "/resources", response_model=List[str], summary="Distinct resources of active permissions"
)
async def list_unique_resources(db: AsyncSession = Depends(get_db)):
    return await permission_service.unique_resources(db)


@router.get(
    "/map",
    response_model=ActionResourceMap,
    summary="Resources of active permissions grouped by action",
)
async def get_action_resource_map(db: AsyncSession = Depends(get_db)):
    return await permission_service.action_resource_map(db)


@router.get(
    "/action/{action}",
    response_model=List[PermissionResponse],
    summary="Active permissions for an action",
)
async def list_permissions_by_action(
    action: str = Path(..., description="Action name, e.g. 'read'"),
    db: AsyncSession = Depends(get_db),
):
    permissions = await permission_service.list_by_action(db, action)
    return [project_permission(p) for p in permissions]


@router.get(
    "/resource/{resource}",
    response_model=List[PermissionResponse],
    summary="Active permissions on a resource",
)
async def list_permissions_by_resource(
    resource: str = Path(..., description="Resource name, e.g. 'users'"),
    db: AsyncSession = Depends(get_db),
):
    permissions = await permission_service.list_by_resource(db, resource)
    return [project_permission(p) for p in permissions]


@router.get(
    "/check",
    response_model=ExistsResponse,
    summary="Check whether an active permission exists",
)
async def check_permission_exists(
    action: str = Query(..., min_length=1),
    resource: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    exists = await permission_service.check_exists(db, action, resource)
    return ExistsResponse(exists=exists)


@router.get(
    "/{action}/{resource}",
    response_model=PermissionResponse,
    summary="Get an active permission by action and resource",
    responses=NOT_FOUND,
)
async def get_permission_by_action_and_resource(
    action: str = Path(...),
    resource: str = Path(...),
    db: AsyncSession = Depends(get_db),
):
    permission = await permission_service.get_by_action_and_resource(db, action, resource)
    return project_permission(permission)


@router.get(
    "/{permission_id}",
    response_model=PermissionResponse,
    summary="Get a permission by ID",
    responses=NOT_FOUND,
)
async def get_permission(
    permission_id: uuid.UUID = Path(..., description="The ID of the permission"),
    db: AsyncSession = Depends(get_db),
):
    permission = await permission_service.get_permission(db, permission_id)
    return project_permission(permission)


@router.post(
    "",
    response_model=PermissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new permission",
    responses={status.HTTP_409_CONFLICT: {"model": ErrorResponse}},
)
async def create_permission(
    permission_in: PermissionCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Create a new permission.

    - **action**: Lowercase action name (letters, digits, underscores)
    - **resource**: Lowercase resource name (letters, digits, underscores)
    - **description**: What the permission grants
    """
    logger.info(
        f"Attempting to create permission '{permission_in.action}:{permission_in.resource}'"
    )
    permission = await permission_service.create_permission(db, permission_in)
    return project_permission(permission)


@router.post(
    "/bulk",
    response_model=List[PermissionResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create several permissions at once",
    responses={status.HTTP_409_CONFLICT: {"model": ErrorResponse}},
)
async def bulk_create_permissions(
    payload: PermissionBulkCreate,
    db: AsyncSession = Depends(get_db),
):
    """
    Create several permissions in one request. If any of them already exists,
    or the same action/resource pair appears twice, none are created.
    """
    permissions = await permission_service.bulk_create_permissions(db, payload.permissions)
    return [project_permission(p) for p in permissions]


@router.patch(
    "/{permission_id}",
    response_model=PermissionResponse,
    summary="Update a permission",
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        status.HTTP_409_CONFLICT: {"model": ErrorResponse},
    },
)
async def update_permission(
    permission_in: PermissionUpdate,
    permission_id: uuid.UUID = Path(..., description="The ID of the permission to update"),
    db: AsyncSession = Depends(get_db),
):
    permission = await permission_service.update_permission(db, permission_id, permission_in)
    return project_permission(permission)


@router.delete(
    "/{permission_id}",
    response_model=PermissionResponse,
    summary="Deactivate a permission",
    responses=NOT_FOUND,
)
async def soft_delete_permission(
    permission_id: uuid.UUID = Path(..., description="The ID of the permission to deactivate"),
    db: AsyncSession = Depends(get_db),
):
    permission = await permission_service.soft_delete_permission(db, permission_id)
    return project_permission(permission)


@router.post(
    "/{permission_id}/restore",
    response_model=PermissionResponse,
    summary="Reactivate a soft-deleted permission",
    responses=NOT_FOUND,
)
async def restore_permission(
    permission_id: uuid.UUID = Path(..., description="The ID of the permission to restore"),
    db: AsyncSession = Depends(get_db),
):
    permission = await permission_service.restore_permission(db, permission_id)
    return project_permission(permission)


@router.delete(
    "/{permission_id}/permanent",
    response_model=PermissionResponse,
    summary="Permanently delete a permission",
    responses=NOT_FOUND,
)
async def delete_permission(
    permission_id: uuid.UUID = Path(..., description="The ID of the permission to delete"),
    db: AsyncSession = Depends(get_db),
):
    """
    Permanently delete a permission and return its last state. Roles that
    reference it keep the reference, which is skipped when they are read.
    """
    logger.warning(f"Permanently deleting permission {permission_id}")
    permission = await permission_service.delete_permission(db, permission_id)
    return project_permission(permission)
