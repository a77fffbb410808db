from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import ConfigDict, EmailStr, Field

from rbac_service.schemas.common_schemas import APIModel
from rbac_service.schemas.role_schemas import RoleResponse

USERNAME_PATTERN = r"^[a-zA-Z0-9_]+$"


class UserCreate(APIModel):
    username: str = Field(..., min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    roles: List[UUID] = Field(default_factory=list, description="Initial role IDs")

    model_config = ConfigDict(
        extra="forbid",
        json_schema_extra={
            "examples": [
                {
                    "username": "alice",
                    "email": "alice@example.com",
                    "password": "correct-horse-battery",
                    "roles": [],
                }
            ]
        },
    )


class UserUpdate(APIModel):
    # All fields are optional for an update
    username: Optional[str] = Field(
        None, min_length=3, max_length=30, pattern=USERNAME_PATTERN
    )
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=8, max_length=128)
    email_verified: Optional[bool] = None
    is_active: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")


class UserResponse(APIModel):
    """External view of a user; the password hash is never part of it"""

    id: UUID
    username: str
    email: str
    email_verified: bool
    is_active: bool
    roles: List[RoleResponse] = Field(default_factory=list)
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class UserStats(APIModel):
    total: int
    active: int
    inactive: int
    verified: int
    unverified: int
    active_percentage: float
    inactive_percentage: float
    verified_percentage: float
    unverified_percentage: float


@dataclass
class UserListFilters:
    """Optional criteria for listing users; ``None`` means unconstrained."""

    search: Optional[str] = None
    role: Optional[str] = None
    email_verified: Optional[bool] = None
    is_active: Optional[bool] = None
