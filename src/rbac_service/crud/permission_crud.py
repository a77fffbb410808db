# src/rbac_service/crud/permission_crud.py
from typing import Any, Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from rbac_service.crud.base_crud import CRUDBase
from rbac_service.crud.expand import NoExpand
from rbac_service.models.permission import Permission

# Listing order for every permission query: action, then resource
PERMISSION_SORT = (Permission.action.asc(), Permission.resource.asc())


def normalize_key(value: str) -> str:
    return value.strip().lower()


class PermissionCRUD(CRUDBase[Permission, NoExpand]):
    def __init__(self, db: AsyncSession):
        super().__init__(Permission, db)

    def normalize(self, data: Dict[str, Any]) -> Dict[str, Any]:
        data = dict(data)
        for key in ("action", "resource"):
            if data.get(key) is not None:
                data[key] = normalize_key(data[key])
        return data

    async def create(self, data: Dict[str, Any], expand=()) -> Permission:
        return await super().create(self.normalize(data), expand)

    async def update(self, id, data: Dict[str, Any], expand=()) -> Optional[Permission]:
        return await super().update(id, self.normalize(data), expand)

    async def get_by_action_and_resource(
        self, action: str, resource: str, include_inactive: bool = False
    ) -> Optional[Permission]:
        filters = [
            Permission.action == normalize_key(action),
            Permission.resource == normalize_key(resource),
        ]
        if not include_inactive:
            filters.append(Permission.is_active.is_(True))
        return await self.find_one(filters)

    async def exists_by_action_and_resource(self, action: str, resource: str) -> bool:
        return await self.exists(
            [
                Permission.action == normalize_key(action),
                Permission.resource == normalize_key(resource),
            ]
        )

    async def unique_actions(self) -> List[str]:
        return await self.distinct(Permission.action, [Permission.is_active.is_(True)])

    async def unique_resources(self) -> List[str]:
        return await self.distinct(Permission.resource, [Permission.is_active.is_(True)])
