from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import ConfigDict, Field, field_validator

from rbac_service.schemas.common_schemas import APIModel
from rbac_service.schemas.permission_schemas import PermissionResponse


class RoleCreate(APIModel):
    """Schema for creating a new role"""

    name: str = Field(..., min_length=2, max_length=50, description="Unique name for the role")
    description: str = Field(..., min_length=5, max_length=500)
    permissions: List[UUID] = Field(
        default_factory=list, description="Initial permission IDs"
    )

    @field_validator("name", mode="before")
    def clean_name(cls, v):
        # Names are stored trimmed and lowercased
        return v.strip().lower() if isinstance(v, str) else v


class RoleUpdate(APIModel):
    """Schema for updating an existing role"""

    name: Optional[str] = Field(None, min_length=2, max_length=50)
    description: Optional[str] = Field(None, min_length=5, max_length=500)
    is_active: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("name", mode="before")
    def clean_name(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class RoleResponse(APIModel):
    """Schema for role response, with its resolved permissions"""

    id: UUID
    name: str
    description: str
    is_active: bool
    permissions: List[PermissionResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime


class RoleStats(APIModel):
    total: int
    active: int
    inactive: int
    active_percentage: float
    inactive_percentage: float
