"""
Clause builders used to compose repository filters.

Each builder returns a SQLAlchemy boolean clause, or ``None`` when its
criterion is absent; ``compose`` drops the ``None`` entries so absent criteria
impose no constraint.
"""
import uuid
from typing import Any, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.sql import ColumnElement


def compose(*clauses: Optional[ColumnElement]) -> List[ColumnElement]:
    """AND-composition: the repository applies every returned clause."""
    return [clause for clause in clauses if clause is not None]


def search_clause(term: Optional[str], *columns: Any) -> Optional[ColumnElement]:
    """Case-insensitive substring match of ``term`` against any of ``columns``."""
    if term is None or not term.strip():
        return None
    term = term.strip()
    return or_(*(column.icontains(term, autoescape=True) for column in columns))


def equals_clause(column: Any, value: Any) -> Optional[ColumnElement]:
    if value is None:
        return None
    return column == value


def active_clause(column: Any, include_inactive: bool) -> Optional[ColumnElement]:
    """Restrict to active records unless inactive ones were asked for."""
    if include_inactive:
        return None
    return column.is_(True)


def member_of_clause(
    owner_column: Any, association_owner: Any, association_member: Any, member_id: uuid.UUID
) -> ColumnElement:
    """Owners whose reference set contains ``member_id``."""
    return owner_column.in_(
        select(association_owner).where(association_member == member_id)
    )


def parse_reference(value: Optional[str]) -> Optional[uuid.UUID]:
    """Return ``value`` as an id if it is one, else ``None`` (it is a name)."""
    if value is None:
        return None
    try:
        return uuid.UUID(value.strip())
    except (ValueError, AttributeError):
        return None
