# src/rbac_service/services/role_service.py
import logging
import uuid
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from rbac_service.config import settings
from rbac_service.crud.base_crud import Page
from rbac_service.crud.expand import RoleExpand
from rbac_service.crud.filters import active_clause, compose, search_clause
from rbac_service.crud.membership_crud import MembershipCRUD
from rbac_service.crud.role_crud import RoleCRUD, normalize_name, role_permissions
from rbac_service.exceptions import ConflictError, InvalidInputError, NotFoundError
from rbac_service.models.permission import Permission
from rbac_service.models.role import Role
from rbac_service.schemas.common_schemas import percentage
from rbac_service.schemas.role_schemas import RoleCreate, RoleStats, RoleUpdate

logger = logging.getLogger(__name__)

WITH_PERMISSIONS = (RoleExpand.PERMISSIONS,)


def permission_engine(db: AsyncSession) -> MembershipCRUD:
    return role_permissions(db, validate_members=settings.VALIDATE_MEMBER_REFERENCES)


async def list_roles(
    db: AsyncSession,
    include_inactive: bool = False,
    search: Optional[str] = None,
    page: int = 1,
    page_size: Optional[int] = None,
) -> Page[Role]:
    filters = compose(
        active_clause(Role.is_active, include_inactive),
        search_clause(search, Role.name),
    )
    return await RoleCRUD(db).find_page(
        filters,
        page=page,
        page_size=page_size,
        sort=[Role.created_at.desc()],
        expand=WITH_PERMISSIONS,
    )


async def get_role(db: AsyncSession, role_id: uuid.UUID) -> Role:
    role = await RoleCRUD(db).get(role_id, WITH_PERMISSIONS)
    if role is None:
        logger.warning(f"Role with ID '{role_id}' not found")
        raise NotFoundError.for_entity("Role", role_id)
    return role


async def get_role_by_name(db: AsyncSession, name: str) -> Role:
    if not name or not name.strip():
        raise InvalidInputError("Role name is required")
    role = await RoleCRUD(db).get_by_name(name, WITH_PERMISSIONS)
    if role is None:
        raise NotFoundError(f"Role with name '{normalize_name(name)}' not found")
    return role


async def create_role(db: AsyncSession, data: RoleCreate) -> Role:
    """
    Create a role, optionally with an initial set of permission IDs.

    Names are compared case-insensitively against every stored role,
    active or not.
    """
    crud = RoleCRUD(db)
    if await crud.exists_by_name(data.name):
        logger.warning(f"Role with name '{data.name}' already exists")
        raise ConflictError(f"Role with name '{normalize_name(data.name)}' already exists")

    role = await crud.create(data.model_dump(exclude={"permissions"}))
    logger.info(f"Created role '{role.name}' with ID: {role.id}")
    if data.permissions:
        return await permission_engine(db).set_members(role.id, data.permissions)
    return await crud.get(role.id, WITH_PERMISSIONS)


async def update_role(db: AsyncSession, role_id: uuid.UUID, data: RoleUpdate) -> Role:
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise InvalidInputError("At least one field must be provided for update")

    crud = RoleCRUD(db)
    current = await get_role(db, role_id)
    if "name" in changes and normalize_name(changes["name"]) != current.name:
        other = await crud.get_by_name(changes["name"])
        if other is not None and other.id != role_id:
            raise ConflictError(
                f"Role with name '{normalize_name(changes['name'])}' already exists"
            )

    role = await crud.update(role_id, changes, WITH_PERMISSIONS)
    logger.info(f"Updated role with ID: {role_id}")
    return role


async def soft_delete_role(db: AsyncSession, role_id: uuid.UUID) -> Role:
    role = await RoleCRUD(db).soft_delete(role_id, WITH_PERMISSIONS)
    if role is None:
        raise NotFoundError.for_entity("Role", role_id)
    logger.info(f"Deactivated role with ID: {role_id}")
    return role


async def restore_role(db: AsyncSession, role_id: uuid.UUID) -> Role:
    role = await RoleCRUD(db).restore(role_id, WITH_PERMISSIONS)
    if role is None:
        raise NotFoundError.for_entity("Role", role_id)
    logger.info(f"Restored role with ID: {role_id}")
    return role


async def delete_role(db: AsyncSession, role_id: uuid.UUID) -> Role:
    """Remove a role and its permission set. Users keep a reference that no longer resolves."""
    role = await RoleCRUD(db).hard_delete(role_id, WITH_PERMISSIONS)
    if role is None:
        raise NotFoundError.for_entity("Role", role_id)
    logger.info(f"Deleted role with ID: {role_id}")
    return role


async def get_stats(db: AsyncSession) -> RoleStats:
    crud = RoleCRUD(db)
    total = await crud.count()
    active = await crud.count([Role.is_active.is_(True)])
    inactive = total - active
    return RoleStats(
        total=total,
        active=active,
        inactive=inactive,
        active_percentage=percentage(active, total),
        inactive_percentage=percentage(inactive, total),
    )


# --- Role permissions ---


async def list_role_permissions(db: AsyncSession, role_id: uuid.UUID) -> List[Permission]:
    return await permission_engine(db).list_members(role_id)


async def add_role_permissions(
    db: AsyncSession, role_id: uuid.UUID, permission_ids: Sequence[uuid.UUID]
) -> Role:
    return await permission_engine(db).add_members(role_id, permission_ids)


async def remove_role_permissions(
    db: AsyncSession, role_id: uuid.UUID, permission_ids: Sequence[uuid.UUID]
) -> Role:
    return await permission_engine(db).remove_members(role_id, permission_ids)


async def set_role_permissions(
    db: AsyncSession, role_id: uuid.UUID, permission_ids: Sequence[uuid.UUID]
) -> Role:
    return await permission_engine(db).set_members(role_id, permission_ids)


async def role_has_permission(
    db: AsyncSession, role_id: uuid.UUID, permission_id: uuid.UUID
) -> bool:
    return await permission_engine(db).has_member(role_id, permission_id)
