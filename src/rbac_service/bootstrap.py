# src/rbac_service/bootstrap.py
"""
Seeding of the default permissions, roles and initial admin user.

Every step is create-if-missing, so running the bootstrap against an already
seeded store creates nothing. Run it with ``python -m rbac_service.bootstrap``
or enable ``RBAC_SERVICE_BOOTSTRAP_ON_STARTUP``.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Dict, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from rbac_service.config import settings as app_settings
from rbac_service.crud.permission_crud import PermissionCRUD
from rbac_service.db import AsyncSessionLocal, create_schema, dispose_engine
from rbac_service.exceptions import ConflictError, NotFoundError
from rbac_service.schemas.permission_schemas import PermissionCreate
from rbac_service.schemas.role_schemas import RoleCreate
from rbac_service.schemas.user_schemas import UserCreate
from rbac_service.services import permission_service, role_service, user_service

logger = logging.getLogger(__name__)

# Core permissions as (action, resource, description)
CORE_PERMISSIONS = [
    ("create", "users", "Create new users"),
    ("read", "users", "Read user details"),
    ("update", "users", "Update user information"),
    ("delete", "users", "Delete users"),
    ("create", "roles", "Create new roles"),
    ("read", "roles", "Read role details"),
    ("update", "roles", "Update role information"),
    ("delete", "roles", "Delete roles"),
    ("create", "permissions", "Create new permissions"),
    ("read", "permissions", "Read permission details"),
    ("update", "permissions", "Update permission information"),
    ("delete", "permissions", "Delete permissions"),
    ("create", "posts", "Create new posts"),
    ("read", "posts", "Read posts"),
    ("update", "posts", "Update posts"),
    ("delete", "posts", "Delete posts"),
    ("moderate", "posts", "Moderate posts"),
    ("create", "comments", "Create new comments"),
    ("read", "comments", "Read comments"),
    ("delete", "comments", "Delete comments"),
]

# Core roles to be created during bootstrapping
CORE_ROLES = {
    "admin": "Administrator with full system access",
    "moderator": "Moderator for content management",
    "user": "Regular user with limited permissions",
    "guest": "Guest with minimal read permissions",
}

_KEYS = [(action, resource) for action, resource, _ in CORE_PERMISSIONS]

# Role-permission mapping for initial setup
ROLE_PERMISSIONS_MAP = {
    "admin": _KEYS,
    "moderator": [k for k in _KEYS if k[1] == "posts" or k == ("read", "users")],
    "user": [
        k for k in _KEYS if k[0] in ("read", "create") and k[1] in ("posts", "comments")
    ],
    "guest": [k for k in _KEYS if k[0] == "read"],
}

ADMIN_ROLE = "admin"


@dataclass
class BootstrapSummary:
    permissions_created: int = 0
    roles_created: int = 0
    grants_created: int = 0
    admin_created: bool = False

    @property
    def created_anything(self) -> bool:
        return bool(
            self.permissions_created
            or self.roles_created
            or self.grants_created
            or self.admin_created
        )


async def create_core_permissions(
    db: AsyncSession, summary: BootstrapSummary
) -> Dict[Tuple[str, str], uuid.UUID]:
    """Create the core permissions if they don't exist yet."""
    permission_ids = {}

    for action, resource, description in CORE_PERMISSIONS:
        try:
            permission = await permission_service.create_permission(
                db,
                PermissionCreate(action=action, resource=resource, description=description),
            )
            summary.permissions_created += 1
        except ConflictError:
            # Soft-deleted permissions are reused as they are
            permission = await PermissionCRUD(db).get_by_action_and_resource(
                action, resource, include_inactive=True
            )
            logger.info(f"Permission '{action}:{resource}' already exists")
        permission_ids[(action, resource)] = permission.id

    return permission_ids


async def create_core_roles(db: AsyncSession, summary: BootstrapSummary) -> Dict[str, uuid.UUID]:
    """Create the core roles if they don't exist yet."""
    role_ids = {}

    for name, description in CORE_ROLES.items():
        try:
            role = await role_service.create_role(
                db, RoleCreate(name=name, description=description)
            )
            summary.roles_created += 1
        except ConflictError:
            role = await role_service.get_role_by_name(db, name)
            logger.info(f"Role '{name}' already exists")
        role_ids[name] = role.id

    return role_ids


async def assign_permissions_to_roles(
    db: AsyncSession,
    role_ids: Dict[str, uuid.UUID],
    permission_ids: Dict[Tuple[str, str], uuid.UUID],
    summary: BootstrapSummary,
) -> None:
    """Grant each role the permissions it is mapped to; existing grants are kept."""
    for role_name, keys in ROLE_PERMISSIONS_MAP.items():
        role_id = role_ids[role_name]
        missing = [
            permission_ids[key]
            for key in keys
            if not await role_service.role_has_permission(db, role_id, permission_ids[key])
        ]
        if not missing:
            continue
        await role_service.add_role_permissions(db, role_id, missing)
        summary.grants_created += len(missing)
        logger.info(f"Granted {len(missing)} permission(s) to role '{role_name}'")


async def create_admin_user(
    db: AsyncSession, admin_role_id: uuid.UUID, summary: BootstrapSummary
) -> None:
    """Create the initial admin from settings and make sure it holds the admin role."""
    email = app_settings.INITIAL_ADMIN_EMAIL
    password = app_settings.INITIAL_ADMIN_PASSWORD
    if not email or not password:
        logger.info("Initial admin credentials not configured, skipping admin user")
        return

    try:
        user = await user_service.get_user_by_email(db, email)
        logger.info(f"Admin user '{email}' already exists")
    except NotFoundError:
        user = await user_service.create_user(
            db,
            UserCreate(
                username=app_settings.INITIAL_ADMIN_USERNAME,
                email=email,
                password=password,
            ),
        )
        await user_service.verify_email(db, user.id)
        summary.admin_created = True

    if not await user_service.user_has_role(db, user.id, admin_role_id):
        await user_service.add_roles(db, user.id, [admin_role_id])
        summary.grants_created += 1
        logger.info(f"Assigned admin role to user '{user.id}'")


async def bootstrap_rbac(db: AsyncSession) -> BootstrapSummary:
    """
    Seed permissions, roles, their grants and the initial admin, then commit.

    Errors roll the whole bootstrap back and propagate to the caller.
    """
    logger.info("Starting RBAC bootstrapping process")
    summary = BootstrapSummary()
    try:
        permission_ids = await create_core_permissions(db, summary)
        role_ids = await create_core_roles(db, summary)
        await assign_permissions_to_roles(db, role_ids, permission_ids, summary)
        await create_admin_user(db, role_ids[ADMIN_ROLE], summary)
        await db.commit()
    except Exception:
        await db.rollback()
        logger.error("Bootstrap process failed", exc_info=True)
        raise

    logger.info(
        f"Bootstrap completed: {summary.permissions_created} permission(s), "
        f"{summary.roles_created} role(s), {summary.grants_created} grant(s) created"
    )
    return summary


async def run_bootstrap() -> BootstrapSummary:
    """Entry point for the CLI: ensure the schema, then seed with a fresh session."""
    await create_schema()
    try:
        async with AsyncSessionLocal() as db:
            return await bootstrap_rbac(db)
    finally:
        await dispose_engine()


if __name__ == "__main__":
    logging.basicConfig(
        level=app_settings.LOGGING_LEVEL.upper(),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    asyncio.run(run_bootstrap())
