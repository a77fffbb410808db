import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_service.db import get_db
from rbac_service.schemas.common_schemas import ErrorResponse, MembershipCheckResponse
from rbac_service.schemas.permission_schemas import PermissionResponse
from rbac_service.schemas.projections import project_permission, project_role
from rbac_service.schemas.role_permission_schemas import RolePermissionCheck, RolePermissionIds
from rbac_service.schemas.role_schemas import RoleResponse
from rbac_service.services import role_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/roles/{role_id}/permissions",
    tags=["Admin - Role Permissions"],
)

MUTATION_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
}


@router.get(
    "",
    response_model=List[PermissionResponse],
    summary="List all permissions assigned to a role",
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
async def list_role_permissions(
    role_id: uuid.UUID = Path(..., description="The ID of the role to list permissions for"),
    db: AsyncSession = Depends(get_db),
):
    """
    List the permissions of a role in the order they were assigned.
    Permissions that have since been deleted are left out.
    """
    permissions = await role_service.list_role_permissions(db, role_id)
    return [project_permission(p) for p in permissions]


@router.post(
    "/add",
    response_model=RoleResponse,
    summary="Add permissions to a role",
    responses=MUTATION_RESPONSES,
)
async def add_role_permissions(
    payload: RolePermissionIds,
    role_id: uuid.UUID = Path(..., description="The ID of the role"),
    db: AsyncSession = Depends(get_db),
):
    """
    Add permissions to a role. Permissions the role already has are ignored.

    - **permissionIds**: IDs of the permissions to add
    """
    logger.info(f"Adding permissions {payload.permission_ids} to role {role_id}")
    role = await role_service.add_role_permissions(db, role_id, payload.permission_ids)
    return project_role(role)


@router.post(
    "/remove",
    response_model=RoleResponse,
    summary="Remove permissions from a role",
    responses=MUTATION_RESPONSES,
)
async def remove_role_permissions(
    payload: RolePermissionIds,
    role_id: uuid.UUID = Path(..., description="The ID of the role"),
    db: AsyncSession = Depends(get_db),
):
    """
    Remove permissions from a role. IDs the role does not have are ignored.

    - **permissionIds**: IDs of the permissions to remove
    """
    logger.info(f"Removing permissions {payload.permission_ids} from role {role_id}")
    role = await role_service.remove_role_permissions(db, role_id, payload.permission_ids)
    return project_role(role)


@router.post(
    "/set",
    response_model=RoleResponse,
    summary="Replace the permissions of a role",
    responses=MUTATION_RESPONSES,
)
async def set_role_permissions(
    payload: RolePermissionIds,
    role_id: uuid.UUID = Path(..., description="The ID of the role"),
    db: AsyncSession = Depends(get_db),
):
    """
    Replace the whole permission set of a role. An empty list removes every permission.

    - **permissionIds**: The complete new set of permission IDs
    """
    logger.info(f"Setting permissions of role {role_id} to {payload.permission_ids}")
    role = await role_service.set_role_permissions(db, role_id, payload.permission_ids)
    return project_role(role)


@router.post(
    "/check",
    response_model=MembershipCheckResponse,
    summary="Check whether a role holds a permission",
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
async def check_role_permission(
    payload: RolePermissionCheck,
    role_id: uuid.UUID = Path(..., description="The ID of the role"),
    db: AsyncSession = Depends(get_db),
):
    is_member = await role_service.role_has_permission(db, role_id, payload.permission_id)
    return MembershipCheckResponse(
        owner_id=role_id, member_id=payload.permission_id, is_member=is_member
    )
