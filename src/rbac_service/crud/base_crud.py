# src/rbac_service/crud/base_crud.py
import logging
import math
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import (
    Any,
    Callable,
    Dict,
    Generic,
    List,
    Optional,
    Sequence,
    Type,
    TypeVar,
)

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement, Select

from rbac_service.config import settings
from rbac_service.db import utcnow

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

ModelT = TypeVar("ModelT")
ExpandT = TypeVar("ExpandT", bound=Enum)
T = TypeVar("T")
U = TypeVar("U")

Filters = Sequence[ColumnElement]


@dataclass
class Page(Generic[T]):
    """One page of a filtered, sorted result set plus its pagination metadata."""

    items: List[T]
    page: int
    page_size: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.page_size else 0

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1

    def map(self, fn: Callable[[T], U]) -> "Page[U]":
        return Page(
            items=[fn(item) for item in self.items],
            page=self.page,
            page_size=self.page_size,
            total=self.total,
        )

    @classmethod
    def empty(cls, page: int, page_size: Optional[int] = None) -> "Page[T]":
        page, page_size = clamp_pagination(page, page_size)
        return cls(items=[], page=page, page_size=page_size, total=0)


def clamp_pagination(page: int, page_size: Optional[int] = None) -> tuple[int, int]:
    if page_size is None:
        page_size = settings.DEFAULT_PAGE_SIZE
    return max(1, page), max(1, min(page_size, MAX_PAGE_SIZE))


class CRUDBase(Generic[ModelT, ExpandT]):
    """
    Uniform data access for one entity type.

    Reads return ``None`` when nothing matches; absence is never an error at
    this layer. Writes only flush: the request-scoped session commits.
    """

    model: Type[ModelT]

    def __init__(self, model: Type[ModelT], db: AsyncSession):
        self.model = model
        self.db = db

    # --- Query building ---

    def loader_options(self, expand: Sequence[ExpandT]) -> List[Any]:
        """Eager-loading options for the requested relation paths."""
        return []

    def _select(self, expand: Sequence[ExpandT] = ()) -> Select:
        # Always overwrite identity-mapped instances with what the store holds now
        return (
            select(self.model)
            .options(*self.loader_options(expand))
            .execution_options(populate_existing=True)
        )

    def _order_by(self, sort: Optional[Sequence[Any]]) -> List[Any]:
        order = list(sort) if sort else [self.model.created_at.desc()]
        # Primary key tie-breaker keeps pages disjoint when sort keys collide
        order.append(self.model.id.asc())
        return order

    # --- Reads ---

    async def find_page(
        self,
        filters: Filters = (),
        page: int = 1,
        page_size: Optional[int] = None,
        sort: Optional[Sequence[Any]] = None,
        expand: Sequence[ExpandT] = (),
    ) -> Page[ModelT]:
        page, page_size = clamp_pagination(page, page_size)
        total = await self.count(filters)
        if total == 0:
            return Page(items=[], page=page, page_size=page_size, total=0)

        stmt = (
            self._select(expand)
            .where(*filters)
            .order_by(*self._order_by(sort))
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        result = await self.db.execute(stmt)
        items = list(result.scalars().all())
        return Page(items=items, page=page, page_size=page_size, total=total)

    async def find_all(
        self,
        filters: Filters = (),
        sort: Optional[Sequence[Any]] = None,
        expand: Sequence[ExpandT] = (),
    ) -> List[ModelT]:
        stmt = self._select(expand).where(*filters).order_by(*self._order_by(sort))
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def get(
        self, id: uuid.UUID, expand: Sequence[ExpandT] = ()
    ) -> Optional[ModelT]:
        return await self.find_one([self.model.id == id], expand)

    async def find_one(
        self, filters: Filters, expand: Sequence[ExpandT] = ()
    ) -> Optional[ModelT]:
        result = await self.db.execute(self._select(expand).where(*filters).limit(1))
        return result.scalars().first()

    async def exists(self, filters: Filters) -> bool:
        result = await self.db.execute(
            select(self.model.id).where(*filters).limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def count(self, filters: Filters = ()) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(self.model).where(*filters)
        )
        return result.scalar_one()

    async def distinct(self, column: Any, filters: Filters = ()) -> List[Any]:
        result = await self.db.execute(
            select(column).where(*filters).distinct().order_by(column)
        )
        return list(result.scalars().all())

    # --- Writes ---

    async def create(
        self, data: Dict[str, Any], expand: Sequence[ExpandT] = ()
    ) -> ModelT:
        obj = self.model(**data)
        self.db.add(obj)
        # Flush to get the generated ID and defaults back before the transaction ends.
        await self.db.flush()
        logger.debug(f"Created {self.model.__name__} with ID: {obj.id}")
        if expand:
            return await self.get(obj.id, expand)
        return obj

    async def update(
        self, id: uuid.UUID, data: Dict[str, Any], expand: Sequence[ExpandT] = ()
    ) -> Optional[ModelT]:
        obj = await self.get(id)
        if obj is None:
            return None
        for key, value in data.items():
            if not hasattr(self.model, key):
                raise AttributeError(f"{self.model.__name__} has no field '{key}'")
            setattr(obj, key, value)
        await self.db.flush()
        return await self.get(id, expand)

    async def soft_delete(
        self, id: uuid.UUID, expand: Sequence[ExpandT] = ()
    ) -> Optional[ModelT]:
        return await self.update(id, {"is_active": False}, expand)

    async def restore(
        self, id: uuid.UUID, expand: Sequence[ExpandT] = ()
    ) -> Optional[ModelT]:
        return await self.update(id, {"is_active": True}, expand)

    async def delete_owned(self, obj: ModelT) -> None:
        """Remove rows owned by ``obj`` (its outgoing references) before it is deleted."""

    async def hard_delete(
        self, id: uuid.UUID, expand: Sequence[ExpandT] = ()
    ) -> Optional[ModelT]:
        obj = await self.get(id, expand)
        if obj is None:
            return None
        await self.delete_owned(obj)
        await self.db.delete(obj)
        await self.db.flush()
        logger.debug(f"Deleted {self.model.__name__} with ID: {id}")
        return obj

    async def update_many(self, filters: Filters, data: Dict[str, Any]) -> int:
        values = {"updated_at": utcnow(), **data}
        result = await self.db.execute(
            update(self.model)
            .where(*filters)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    async def soft_delete_many(self, filters: Filters) -> int:
        return await self.update_many(filters, {"is_active": False})
