from typing import List
from uuid import UUID

from pydantic import Field

from rbac_service.schemas.common_schemas import APIModel


class RolePermissionIds(APIModel):
    """Permission IDs to add to, remove from, or set on a role"""

    permission_ids: List[UUID] = Field(
        ..., description="IDs of the permissions; duplicates are ignored"
    )


class RolePermissionCheck(APIModel):
    permission_id: UUID = Field(..., description="The ID of the permission to look for")
