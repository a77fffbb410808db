# src/rbac_service/services/user_service.py
import logging
import uuid
from typing import List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from rbac_service.config import settings
from rbac_service.crud.base_crud import Page
from rbac_service.crud.expand import UserExpand
from rbac_service.crud.filters import (
    compose,
    equals_clause,
    member_of_clause,
    parse_reference,
    search_clause,
)
from rbac_service.crud.membership_crud import MembershipCRUD
from rbac_service.crud.role_crud import RoleCRUD
from rbac_service.crud.user_crud import UserCRUD, normalize_email, user_roles
from rbac_service.exceptions import ConflictError, InvalidInputError, NotFoundError
from rbac_service.models.role import Role
from rbac_service.models.user import User
from rbac_service.models.user_role import UserRole
from rbac_service.schemas.common_schemas import percentage
from rbac_service.schemas.user_schemas import (
    UserCreate,
    UserListFilters,
    UserStats,
    UserUpdate,
)
from rbac_service.security import hash_password

logger = logging.getLogger(__name__)

WITH_ROLES = (UserExpand.ROLE_PERMISSIONS,)


def role_engine(db: AsyncSession) -> MembershipCRUD:
    return user_roles(db, validate_members=settings.VALIDATE_MEMBER_REFERENCES)


async def list_users(
    db: AsyncSession,
    filters: UserListFilters,
    page: int = 1,
    page_size: Optional[int] = None,
) -> Page[User]:
    """
    List users matching every given criterion, newest first.

    ``filters.role`` may be a role ID or a role name. A name that matches no
    role yields an empty page without querying users at all.
    """
    role_clause = None
    if filters.role is not None and filters.role.strip():
        role_id = parse_reference(filters.role)
        if role_id is None:
            role = await RoleCRUD(db).get_by_name(filters.role)
            if role is None:
                logger.info(f"No role named '{filters.role}', returning empty user page")
                return Page.empty(page, page_size)
            role_id = role.id
        role_clause = member_of_clause(User.id, UserRole.user_id, UserRole.role_id, role_id)

    clauses = compose(
        search_clause(filters.search, User.username, User.email),
        role_clause,
        equals_clause(User.email_verified, filters.email_verified),
        equals_clause(User.is_active, filters.is_active),
    )
    return await UserCRUD(db).find_page(
        clauses,
        page=page,
        page_size=page_size,
        sort=[User.created_at.desc()],
        expand=WITH_ROLES,
    )


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await UserCRUD(db).get(user_id, WITH_ROLES)
    if user is None:
        logger.warning(f"User with ID '{user_id}' not found")
        raise NotFoundError.for_entity("User", user_id)
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> User:
    user = await UserCRUD(db).get_by_email(email, WITH_ROLES)
    if user is None:
        raise NotFoundError(f"User with email '{normalize_email(email)}' not found")
    return user


async def get_user_by_username(db: AsyncSession, username: str) -> User:
    user = await UserCRUD(db).get_by_username(username, WITH_ROLES)
    if user is None:
        raise NotFoundError(f"User with username '{username}' not found")
    return user


async def _check_unique(
    crud: UserCRUD, username: str | None, email: str | None, exclude_id: uuid.UUID | None = None
) -> None:
    if username is not None:
        other = await crud.get_by_username(username)
        if other is not None and other.id != exclude_id:
            logger.warning(f"Username '{username}' is already taken")
            raise ConflictError(f"User with username '{username}' already exists")
    if email is not None:
        other = await crud.get_by_email(email)
        if other is not None and other.id != exclude_id:
            logger.warning(f"Email '{email}' is already registered")
            raise ConflictError(
                f"User with email '{normalize_email(email)}' already exists"
            )


async def create_user(db: AsyncSession, data: UserCreate) -> User:
    crud = UserCRUD(db)
    await _check_unique(crud, data.username, data.email)

    values = data.model_dump(exclude={"roles"})
    values["password"] = hash_password(data.password)
    user = await crud.create(values)
    logger.info(f"Created user '{user.username}' with ID: {user.id}")
    if data.roles:
        return await role_engine(db).set_members(user.id, data.roles)
    return await crud.get(user.id, WITH_ROLES)


async def update_user(db: AsyncSession, user_id: uuid.UUID, data: UserUpdate) -> User:
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise InvalidInputError("At least one field must be provided for update")

    crud = UserCRUD(db)
    await get_user(db, user_id)
    await _check_unique(crud, changes.get("username"), changes.get("email"), user_id)

    if "password" in changes:
        changes["password"] = hash_password(changes["password"])
    user = await crud.update(user_id, changes, WITH_ROLES)
    logger.info(f"Updated user with ID: {user_id}")
    return user


async def soft_delete_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await UserCRUD(db).soft_delete(user_id, WITH_ROLES)
    if user is None:
        raise NotFoundError.for_entity("User", user_id)
    logger.info(f"Deactivated user with ID: {user_id}")
    return user


async def restore_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await UserCRUD(db).restore(user_id, WITH_ROLES)
    if user is None:
        raise NotFoundError.for_entity("User", user_id)
    logger.info(f"Restored user with ID: {user_id}")
    return user


async def delete_user(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await UserCRUD(db).hard_delete(user_id, WITH_ROLES)
    if user is None:
        raise NotFoundError.for_entity("User", user_id)
    logger.info(f"Deleted user with ID: {user_id}")
    return user


async def verify_email(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await UserCRUD(db).update(user_id, {"email_verified": True}, WITH_ROLES)
    if user is None:
        raise NotFoundError.for_entity("User", user_id)
    logger.info(f"Marked email of user {user_id} as verified")
    return user


async def record_login(db: AsyncSession, user_id: uuid.UUID) -> User:
    user = await UserCRUD(db).record_login(user_id, WITH_ROLES)
    if user is None:
        raise NotFoundError.for_entity("User", user_id)
    return user


async def get_stats(db: AsyncSession) -> UserStats:
    crud = UserCRUD(db)
    total = await crud.count()
    active = await crud.count([User.is_active.is_(True)])
    verified = await crud.count([User.email_verified.is_(True)])
    inactive = total - active
    unverified = total - verified
    return UserStats(
        total=total,
        active=active,
        inactive=inactive,
        verified=verified,
        unverified=unverified,
        active_percentage=percentage(active, total),
        inactive_percentage=percentage(inactive, total),
        verified_percentage=percentage(verified, total),
        unverified_percentage=percentage(unverified, total),
    )


# --- User roles ---


async def list_user_roles(db: AsyncSession, user_id: uuid.UUID) -> List[Role]:
    return await role_engine(db).list_members(user_id)


async def assign_roles(
    db: AsyncSession, user_id: uuid.UUID, role_ids: Sequence[uuid.UUID]
) -> User:
    """Replace the user's role set with ``role_ids``; an empty list clears it."""
    return await role_engine(db).set_members(user_id, role_ids)


async def add_roles(
    db: AsyncSession, user_id: uuid.UUID, role_ids: Sequence[uuid.UUID]
) -> User:
    return await role_engine(db).add_members(user_id, role_ids)


async def remove_roles(
    db: AsyncSession, user_id: uuid.UUID, role_ids: Sequence[uuid.UUID]
) -> User:
    return await role_engine(db).remove_members(user_id, role_ids)


async def user_has_role(db: AsyncSession, user_id: uuid.UUID, role_id: uuid.UUID) -> bool:
    return await role_engine(db).has_member(user_id, role_id)
