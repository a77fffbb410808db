from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import ConfigDict, Field, field_validator

from rbac_service.schemas.common_schemas import APIModel

KEY_PATTERN = r"^[a-z0-9_]+$"


class PermissionCreate(APIModel):
    """Schema for creating a new permission"""

    action: str = Field(
        ..., min_length=2, max_length=50, pattern=KEY_PATTERN,
        description="Lowercase action name (e.g. 'read')",
    )
    resource: str = Field(
        ..., min_length=2, max_length=50, pattern=KEY_PATTERN,
        description="Lowercase resource name (e.g. 'users')",
    )
    description: str = Field(..., min_length=5, max_length=300)

    model_config = ConfigDict(extra="forbid")

    @field_validator("action", "resource", mode="before")
    def clean_key(cls, v):
        # Length and pattern apply to the stored form
        return v.strip().lower() if isinstance(v, str) else v


class PermissionUpdate(APIModel):
    """Schema for updating an existing permission; omitted fields are unchanged"""

    action: Optional[str] = Field(None, min_length=2, max_length=50, pattern=KEY_PATTERN)
    resource: Optional[str] = Field(None, min_length=2, max_length=50, pattern=KEY_PATTERN)
    description: Optional[str] = Field(None, min_length=5, max_length=300)
    is_active: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("action", "resource", mode="before")
    def clean_key(cls, v):
        # Length and pattern apply to the stored form
        return v.strip().lower() if isinstance(v, str) else v


class PermissionBulkCreate(APIModel):
    permissions: List[PermissionCreate] = Field(..., min_length=1)


class PermissionResponse(APIModel):
    """Schema for permission response"""

    id: UUID
    action: str
    resource: str
    description: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class PermissionStats(APIModel):
    total: int
    active: int
    inactive: int
    active_percentage: float
    inactive_percentage: float
    unique_actions_count: int
    unique_resources_count: int
    unique_actions: List[str]
    unique_resources: List[str]


ActionResourceMap = Dict[str, List[str]]
