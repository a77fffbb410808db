"""
Projection of stored entities into their external shapes.

Every projector accepts ``None`` and returns ``None``. Relations that were not
resolved by the query project as empty lists rather than triggering a load.
"""
from typing import Any, List, Optional

from sqlalchemy import inspect

from rbac_service.crud.base_crud import Page
from rbac_service.models.permission import Permission
from rbac_service.models.role import Role
from rbac_service.models.user import User
from rbac_service.schemas.common_schemas import PageResponse
from rbac_service.schemas.permission_schemas import PermissionResponse
from rbac_service.schemas.role_schemas import RoleResponse
from rbac_service.schemas.user_schemas import UserResponse


def _loaded(obj: Any, relation: str) -> List[Any]:
    if relation in inspect(obj).unloaded:
        return []
    return list(getattr(obj, relation))


def project_permission(permission: Optional[Permission]) -> Optional[PermissionResponse]:
    if permission is None:
        return None
    return PermissionResponse(
        id=permission.id,
        action=permission.action,
        resource=permission.resource,
        description=permission.description,
        is_active=permission.is_active,
        created_at=permission.created_at,
        updated_at=permission.updated_at,
    )


def project_role(role: Optional[Role]) -> Optional[RoleResponse]:
    if role is None:
        return None
    return RoleResponse(
        id=role.id,
        name=role.name,
        description=role.description,
        is_active=role.is_active,
        permissions=[project_permission(p) for p in _loaded(role, "permissions")],
        created_at=role.created_at,
        updated_at=role.updated_at,
    )


def project_user(user: Optional[User]) -> Optional[UserResponse]:
    if user is None:
        return None
    return UserResponse(
        id=user.id,
        username=user.username,
        email=user.email,
        email_verified=user.email_verified,
        is_active=user.is_active,
        roles=[project_role(r) for r in _loaded(user, "roles")],
        last_login=user.last_login,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )


def project_page(page: Page, projector) -> PageResponse:
    return PageResponse(
        items=[projector(item) for item in page.items],
        page=page.page,
        page_size=page.page_size,
        total=page.total,
        total_pages=page.total_pages,
        has_next_page=page.has_next_page,
        has_prev_page=page.has_prev_page,
    )
