import logging
import uuid
from typing import List

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_service.db import get_db
from rbac_service.schemas.common_schemas import ErrorResponse, MembershipCheckResponse
from rbac_service.schemas.projections import project_role, project_user
from rbac_service.schemas.role_schemas import RoleResponse
from rbac_service.schemas.user_role_schemas import UserRoleCheck, UserRoleIds
from rbac_service.schemas.user_schemas import UserResponse
from rbac_service.services import user_service

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users/{user_id}/roles",
    tags=["Admin - User Roles"],
)

MUTATION_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
}


@router.get(
    "",
    response_model=List[RoleResponse],
    summary="List all roles assigned to a user",
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
async def list_user_roles(
    user_id: uuid.UUID = Path(..., description="The ID of the user"),
    db: AsyncSession = Depends(get_db),
):
    """
    List the roles of a user, with their permissions, in the order they were
    assigned. Roles that have since been deleted are left out.
    """
    roles = await user_service.list_user_roles(db, user_id)
    return [project_role(r) for r in roles]


@router.post(
    "/assign",
    response_model=UserResponse,
    summary="Replace the roles of a user",
    responses=MUTATION_RESPONSES,
)
async def assign_user_roles(
    payload: UserRoleIds,
    user_id: uuid.UUID = Path(..., description="The ID of the user"),
    db: AsyncSession = Depends(get_db),
):
    """
    Replace the whole role set of a user. An empty list removes every role.

    - **roleIds**: The complete new set of role IDs
    """
    logger.info(f"Assigning roles {payload.role_ids} to user {user_id}")
    user = await user_service.assign_roles(db, user_id, payload.role_ids)
    return project_user(user)


@router.post(
    "/add",
    response_model=UserResponse,
    summary="Add roles to a user",
    responses=MUTATION_RESPONSES,
)
async def add_user_roles(
    payload: UserRoleIds,
    user_id: uuid.UUID = Path(..., description="The ID of the user"),
    db: AsyncSession = Depends(get_db),
):
    logger.info(f"Adding roles {payload.role_ids} to user {user_id}")
    user = await user_service.add_roles(db, user_id, payload.role_ids)
    return project_user(user)


@router.post(
    "/remove",
    response_model=UserResponse,
    summary="Remove roles from a user",
    responses=MUTATION_RESPONSES,
)
async def remove_user_roles(
    payload: UserRoleIds,
    user_id: uuid.UUID = Path(..., description="The ID of the user"),
    db: AsyncSession = Depends(get_db),
):
    logger.info(f"Removing roles {payload.role_ids} from user {user_id}")
    user = await user_service.remove_roles(db, user_id, payload.role_ids)
    return project_user(user)


@router.post(
    "/check",
    response_model=MembershipCheckResponse,
    summary="Check whether a user holds a role",
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
async def check_user_role(
    payload: UserRoleCheck,
    user_id: uuid.UUID = Path(..., description="The ID of the user"),
    db: AsyncSession = Depends(get_db),
):
    is_member = await user_service.user_has_role(db, user_id, payload.role_id)
    return MembershipCheckResponse(owner_id=user_id, member_id=payload.role_id, is_member=is_member)
