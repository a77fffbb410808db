from typing import List
from uuid import UUID

from pydantic import Field

from rbac_service.schemas.common_schemas import APIModel


class UserRoleIds(APIModel):
    """Role IDs to assign to, add to, or remove from a user"""

    role_ids: List[UUID] = Field(..., description="IDs of the roles; duplicates are ignored")


class UserRoleCheck(APIModel):
    role_id: UUID = Field(..., description="ID of the role to look for")
