"""
Seeding helpers shared by unit and integration tests.
Records are created through the service layer and committed, so they survive
the rollback that follows a failed request.
"""
import uuid
from dataclasses import dataclass
from typing import Optional, Sequence

import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from rbac_service.models import Permission, Role, User
from rbac_service.schemas.permission_schemas import PermissionCreate
from rbac_service.schemas.role_schemas import RoleCreate
from rbac_service.schemas.user_schemas import UserCreate
from rbac_service.services import permission_service, role_service, user_service

DEFAULT_PASSWORD = "s3cret-passw0rd"


async def make_permission(
    db: AsyncSession, action: str, resource: str, description: Optional[str] = None
) -> Permission:
    permission = await permission_service.create_permission(
        db,
        PermissionCreate(
            action=action,
            resource=resource,
            description=description or f"Allows {action} on {resource}",
        ),
    )
    await db.commit()
    return permission


async def make_role(
    db: AsyncSession,
    name: str,
    permissions: Sequence[uuid.UUID] = (),
    description: Optional[str] = None,
) -> Role:
    role = await role_service.create_role(
        db,
        RoleCreate(
            name=name,
            description=description or f"The {name} role",
            permissions=list(permissions),
        ),
    )
    await db.commit()
    return role


async def make_user(
    db: AsyncSession,
    username: str,
    roles: Sequence[uuid.UUID] = (),
    email: Optional[str] = None,
    password: str = DEFAULT_PASSWORD,
) -> User:
    user = await user_service.create_user(
        db,
        UserCreate(
            username=username,
            email=email or f"{username}@example.com",
            password=password,
            roles=list(roles),
        ),
    )
    await db.commit()
    return user


@dataclass
class Seeded:
    read_users: Permission
    write_users: Permission
    editor: Role
    alice: User


@pytest_asyncio.fixture
async def seeded(db_session: AsyncSession) -> Seeded:
    """
    Two permissions (read/users, write/users), an "editor" role holding both,
    and a user "alice" holding the editor role.
    """
    read_users = await make_permission(db_session, "read", "users")
    write_users = await make_permission(db_session, "write", "users")
    editor = await make_role(db_session, "editor", [read_users.id, write_users.id])
    alice = await make_user(db_session, "alice", [editor.id])
    return Seeded(read_users=read_users, write_users=write_users, editor=editor, alice=alice)
