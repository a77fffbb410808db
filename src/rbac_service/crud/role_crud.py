# src/rbac_service/crud/role_crud.py
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from rbac_service.crud.base_crud import CRUDBase
from rbac_service.crud.expand import RoleExpand
from rbac_service.crud.membership_crud import MembershipCRUD
from rbac_service.crud.permission_crud import PermissionCRUD
from rbac_service.models.role import Role
from rbac_service.models.role_permission import RolePermission


def normalize_name(name: str) -> str:
    return name.strip().lower()


class RoleCRUD(CRUDBase[Role, RoleExpand]):
    def __init__(self, db: AsyncSession):
        super().__init__(Role, db)

    def loader_options(self, expand: Sequence[RoleExpand]) -> List[Any]:
        if RoleExpand.PERMISSIONS in expand:
            return [selectinload(Role.permissions)]
        return []

    def normalize(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(data)
        if data.get("name") is not None:
            data["name"] = normalize_name(data["name"])
        return data

    async def create(self, data: Dict[str, Any], expand=()) -> Role:
        return await super().create(self.normalize(data), expand)

    async def update(self, id, data: Dict[str, Any], expand=()) -> Optional[Role]:
        return await super().update(id, self.normalize(data), expand)

    async def get_by_name(
        self, name: str, expand: Sequence[RoleExpand] = ()
    ) -> Optional[Role]:
        return await self.find_one([Role.name == normalize_name(name)], expand)

    async def exists_by_name(self, name: str) -> bool:
        return await self.exists([Role.name == normalize_name(name)])

    async def delete_owned(self, obj: Role) -> None:
        await role_permissions(self.db).clear_owner(obj.id)


def role_permissions(db: AsyncSession, validate_members: bool = False) -> MembershipCRUD:
    """Relationship engine for Role.permissions."""
    return MembershipCRUD(
        owners=RoleCRUD(db),
        members=PermissionCRUD(db),
        association=RolePermission,
        owner_key="role_id",
        member_key="permission_id",
        owner_expand=(RoleExpand.PERMISSIONS,),
        validate_members=validate_members,
    )
