from typing import Generic, List, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class APIModel(BaseModel):
    """Base for every request/response body: camelCase on the wire, snake_case accepted."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class ErrorResponse(APIModel):
    detail: str = Field(..., description="Human-readable error message")
    kind: str = Field(..., description="Stable machine-checkable error kind")


class PageResponse(APIModel, Generic[T]):
    """One page of results plus pagination metadata"""

    items: List[T]
    page: int
    page_size: int
    total: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool


class MembershipCheckResponse(APIModel):
    owner_id: UUID
    member_id: UUID
    is_member: bool


class ExistsResponse(APIModel):
    exists: bool


def percentage(part: int, total: int) -> float:
    if not total:
        return 0.0
    return round(part / total * 100, 2)
