# src/rbac_service/crud/user_crud.py
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rbac_service.crud.base_crud import CRUDBase
from rbac_service.crud.expand import RoleExpand, UserExpand
from rbac_service.crud.membership_crud import MembershipCRUD
from rbac_service.crud.role_crud import RoleCRUD
from rbac_service.db import utcnow
from rbac_service.models.role import Role
from rbac_service.models.user import User
from rbac_service.models.user_role import UserRole


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserCRUD(CRUDBase[User, UserExpand]):
    def __init__(self, db: AsyncSession):
        super().__init__(User, db)

    def loader_options(self, expand: Sequence[UserExpand]) -> List[Any]:
        if UserExpand.ROLE_PERMISSIONS in expand:
            return [selectinload(User.roles).selectinload(Role.permissions)]
        if UserExpand.ROLES in expand:
            return [selectinload(User.roles)]
        return []

    def normalize(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(data)
        if data.get("email") is not None:
            data["email"] = normalize_email(data["email"])
        if data.get("username") is not None:
            data["username"] = data["username"].strip()
        return data

    async def create(self, data: Dict[str, Any], expand=()) -> User:
        return await super().create(self.normalize(data), expand)

    async def update(self, id, data: Dict[str, Any], expand=()) -> Optional[User]:
        return await super().update(id, self.normalize(data), expand)

    async def get_by_email(
        self, email: str, expand: Sequence[UserExpand] = ()
    ) -> Optional[User]:
        return await self.find_one([User.email == normalize_email(email)], expand)

    async def get_by_username(
        self, username: str, expand: Sequence[UserExpand] = ()
    ) -> Optional[User]:
        return await self.find_one([User.username == username.strip()], expand)

    async def record_login(self, id, expand: Sequence[UserExpand] = ()) -> Optional[User]:
        return await self.update(id, {"last_login": utcnow()}, expand)

    async def delete_owned(self, obj: User) -> None:
        await user_roles(self.db).clear_owner(obj.id)


def user_roles(db: AsyncSession, validate_members: bool = False) -> MembershipCRUD:
    """Relationship engine for User.roles."""
    return MembershipCRUD(
        owners=UserCRUD(db),
        members=RoleCRUD(db),
        association=UserRole,
        owner_key="user_id",
        member_key="role_id",
        owner_expand=(UserExpand.ROLE_PERMISSIONS,),
        member_expand=(RoleExpand.PERMISSIONS,),
        validate_members=validate_members,
    )
