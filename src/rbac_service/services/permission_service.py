# src/rbac_service/services/permission_service.py
import logging
import uuid
from typing import Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from rbac_service.crud.base_crud import Page
from rbac_service.crud.filters import active_clause, compose
from rbac_service.crud.permission_crud import (
    PERMISSION_SORT,
    PermissionCRUD,
    normalize_key,
)
from rbac_service.exceptions import ConflictError, InvalidInputError, NotFoundError
from rbac_service.models.permission import Permission
from rbac_service.schemas.common_schemas import percentage
from rbac_service.schemas.permission_schemas import (
    PermissionCreate,
    PermissionStats,
    PermissionUpdate,
)

logger = logging.getLogger(__name__)


def _require_key(name: str, value: str) -> str:
    if value is None or not value.strip():
        raise InvalidInputError(f"{name} is required")
    return normalize_key(value)


async def list_permissions(
    db: AsyncSession,
    include_inactive: bool = False,
    page: int = 1,
    page_size: Optional[int] = None,
) -> Page[Permission]:
    filters = compose(active_clause(Permission.is_active, include_inactive))
    return await PermissionCRUD(db).find_page(
        filters, page=page, page_size=page_size, sort=PERMISSION_SORT
    )


async def get_permission(db: AsyncSession, permission_id: uuid.UUID) -> Permission:
    permission = await PermissionCRUD(db).get(permission_id)
    if permission is None:
        logger.warning(f"Permission with ID '{permission_id}' not found")
        raise NotFoundError.for_entity("Permission", permission_id)
    return permission


async def get_by_action_and_resource(
    db: AsyncSession, action: str, resource: str
) -> Permission:
    action = _require_key("Action", action)
    resource = _require_key("Resource", resource)
    permission = await PermissionCRUD(db).get_by_action_and_resource(action, resource)
    if permission is None:
        raise NotFoundError(f"Permission '{action}:{resource}' not found")
    return permission


async def check_exists(db: AsyncSession, action: str, resource: str) -> bool:
    action = _require_key("Action", action)
    resource = _require_key("Resource", resource)
    permission = await PermissionCRUD(db).get_by_action_and_resource(action, resource)
    return permission is not None


async def list_by_action(db: AsyncSession, action: str) -> List[Permission]:
    action = _require_key("Action", action)
    return await PermissionCRUD(db).find_all(
        [Permission.action == action, Permission.is_active.is_(True)],
        sort=[Permission.resource.asc()],
    )


async def list_by_resource(db: AsyncSession, resource: str) -> List[Permission]:
    resource = _require_key("Resource", resource)
    return await PermissionCRUD(db).find_all(
        [Permission.resource == resource, Permission.is_active.is_(True)],
        sort=[Permission.action.asc()],
    )


async def create_permission(db: AsyncSession, data: PermissionCreate) -> Permission:
    crud = PermissionCRUD(db)
    if await crud.exists_by_action_and_resource(data.action, data.resource):
        logger.warning(
            f"Permission '{data.action}:{data.resource}' already exists"
        )
        raise ConflictError(
            f"Permission with action '{normalize_key(data.action)}' and resource "
            f"'{normalize_key(data.resource)}' already exists"
        )
    permission = await crud.create(data.model_dump())
    logger.info(
        f"Created permission '{permission.action}:{permission.resource}' with ID: {permission.id}"
    )
    return permission


async def bulk_create_permissions(
    db: AsyncSession, items: Sequence[PermissionCreate]
) -> List[Permission]:
    """Create several permissions; any duplicate (stored or within the batch) rejects them all."""
    if not items:
        raise InvalidInputError("At least one permission must be provided")

    seen = set()
    for item in items:
        key = (normalize_key(item.action), normalize_key(item.resource))
        if key in seen:
            raise ConflictError(
                f"Permission '{key[0]}:{key[1]}' appears more than once in the request"
            )
        seen.add(key)

    crud = PermissionCRUD(db)
    for action, resource in seen:
        if await crud.exists_by_action_and_resource(action, resource):
            raise ConflictError(
                f"Permission with action '{action}' and resource '{resource}' already exists"
            )

    created = [await crud.create(item.model_dump()) for item in items]
    logger.info(f"Bulk created {len(created)} permissions")
    return created


async def update_permission(
    db: AsyncSession, permission_id: uuid.UUID, data: PermissionUpdate
) -> Permission:
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise InvalidInputError("At least one field must be provided for update")

    crud = PermissionCRUD(db)
    current = await get_permission(db, permission_id)
    action = normalize_key(changes.get("action", current.action))
    resource = normalize_key(changes.get("resource", current.resource))
    if (action, resource) != (current.action, current.resource):
        other = await crud.get_by_action_and_resource(action, resource, include_inactive=True)
        if other is not None and other.id != permission_id:
            raise ConflictError(
                f"Permission with action '{action}' and resource '{resource}' already exists"
            )

    permission = await crud.update(permission_id, changes)
    logger.info(f"Updated permission with ID: {permission_id}")
    return permission


async def soft_delete_permission(db: AsyncSession, permission_id: uuid.UUID) -> Permission:
    permission = await PermissionCRUD(db).soft_delete(permission_id)
    if permission is None:
        raise NotFoundError.for_entity("Permission", permission_id)
    logger.info(f"Deactivated permission with ID: {permission_id}")
    return permission


async def restore_permission(db: AsyncSession, permission_id: uuid.UUID) -> Permission:
    permission = await PermissionCRUD(db).restore(permission_id)
    if permission is None:
        raise NotFoundError.for_entity("Permission", permission_id)
    logger.info(f"Restored permission with ID: {permission_id}")
    return permission


async def delete_permission(db: AsyncSession, permission_id: uuid.UUID) -> Permission:
    """Remove a permission for good. Roles keep their reference, which no longer resolves."""
    permission = await PermissionCRUD(db).hard_delete(permission_id)
    if permission is None:
        raise NotFoundError.for_entity("Permission", permission_id)
    logger.info(f"Deleted permission with ID: {permission_id}")
    return permission


async def unique_actions(db: AsyncSession) -> List[str]:
    return await PermissionCRUD(db).unique_actions()


async def unique_resources(db: AsyncSession) -> List[str]:
    return await PermissionCRUD(db).unique_resources()


async def action_resource_map(db: AsyncSession) -> Dict[str, List[str]]:
    """Active permissions grouped as {action: [resource, ...]} in listing order."""
    permissions = await PermissionCRUD(db).find_all(
        [Permission.is_active.is_(True)], sort=PERMISSION_SORT
    )
    grouped: Dict[str, List[str]] = {}
    for permission in permissions:
        grouped.setdefault(permission.action, []).append(permission.resource)
    return grouped


async def get_stats(db: AsyncSession) -> PermissionStats:
    crud = PermissionCRUD(db)
    total = await crud.count()
    active = await crud.count([Permission.is_active.is_(True)])
    inactive = total - active
    actions = await crud.unique_actions()
    resources = await crud.unique_resources()
    return PermissionStats(
        total=total,
        active=active,
        inactive=inactive,
        active_percentage=percentage(active, total),
        inactive_percentage=percentage(inactive, total),
        unique_actions_count=len(actions),
        unique_resources_count=len(resources),
        unique_actions=actions,
        unique_resources=resources,
    )
