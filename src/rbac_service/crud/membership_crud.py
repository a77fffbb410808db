# src/rbac_service/crud/membership_crud.py
"""
Reference-set management between an owner entity and its members.

The same engine serves Role.permissions (owner Role, member Permission) and
User.roles (owner User, member Role). A reference set lives in an association
table keyed by (owner_id, member_id), so it can never hold duplicates, with a
``position`` column that records insertion order.
"""
import logging
import uuid
from typing import Any, Dict, Iterable, List, Sequence, Type

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.dialects import postgresql, sqlite

from rbac_service.crud.base_crud import CRUDBase
from rbac_service.db import utcnow
from rbac_service.exceptions import InvalidInputError, NotFoundError

logger = logging.getLogger(__name__)

# Dialects whose INSERT supports ON CONFLICT DO NOTHING
SKIP_EXISTING_INSERTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}


def unique_ids(ids: Iterable[uuid.UUID]) -> List[uuid.UUID]:
    """De-duplicate ``ids`` keeping the first occurrence of each."""
    return list(dict.fromkeys(ids))


class MembershipCRUD:
    def __init__(
        self,
        owners: CRUDBase,
        members: CRUDBase,
        association: Type[Any],
        owner_key: str,
        member_key: str,
        owner_expand: Sequence[Any] = (),
        member_expand: Sequence[Any] = (),
        validate_members: bool = False,
    ):
        self.owners = owners
        self.members = members
        self.db = owners.db
        self.association = association
        self.owner_column = getattr(association, owner_key)
        self.member_column = getattr(association, member_key)
        self.owner_key = owner_key
        self.member_key = member_key
        # Relation path that resolves the owner's members when it is reloaded
        self.owner_expand = tuple(owner_expand)
        # Relation path resolved on each member returned by list_members
        self.member_expand = tuple(member_expand)
        self.validate_members = validate_members

    @property
    def owner_name(self) -> str:
        return self.owners.model.__name__

    @property
    def member_name(self) -> str:
        return self.members.model.__name__

    # --- Helpers ---

    async def _require_owner(self, owner_id: uuid.UUID) -> None:
        if not await self.owners.exists([self.owners.model.id == owner_id]):
            logger.warning(f"{self.owner_name} with ID '{owner_id}' not found")
            raise NotFoundError.for_entity(self.owner_name, owner_id)

    def _require_candidates(self, candidate_ids: Sequence[uuid.UUID]) -> List[uuid.UUID]:
        ids = unique_ids(candidate_ids)
        if not ids:
            raise InvalidInputError(
                f"At least one {self.member_name.lower()} ID must be provided"
            )
        return ids

    async def _check_members_exist(self, ids: Sequence[uuid.UUID]) -> None:
        if not self.validate_members or not ids:
            return
        found = set(
            await self.members.distinct(
                self.members.model.id, [self.members.model.id.in_(ids)]
            )
        )
        missing = [str(i) for i in ids if i not in found]
        if missing:
            raise InvalidInputError(
                f"Unknown {self.member_name.lower()} IDs: {', '.join(missing)}",
                details={"missing": missing},
            )

    async def _current_ids(self, owner_id: uuid.UUID) -> List[uuid.UUID]:
        result = await self.db.execute(
            select(self.member_column)
            .where(self.owner_column == owner_id)
            .order_by(self.association.position)
        )
        return list(result.scalars().all())

    async def _positions(self, owner_id: uuid.UUID) -> Dict[uuid.UUID, int]:
        result = await self.db.execute(
            select(self.member_column, self.association.position).where(
                self.owner_column == owner_id
            )
        )
        return {member_id: position for member_id, position in result.all()}

    def _insert(self, skip_existing: bool):
        table = self.association.__table__
        dialect_insert = SKIP_EXISTING_INSERTS.get(self.db.get_bind().dialect.name)
        if skip_existing and dialect_insert is not None:
            return dialect_insert(table).on_conflict_do_nothing(
                index_elements=[self.owner_key, self.member_key]
            )
        return insert(table)

    async def _append(
        self,
        owner_id: uuid.UUID,
        ids: Sequence[uuid.UUID],
        start: int,
        skip_existing: bool = False,
    ) -> None:
        if not ids:
            return
        now = utcnow()
        await self.db.execute(
            self._insert(skip_existing),
            [
                {
                    self.owner_key: owner_id,
                    self.member_key: member_id,
                    "position": start + offset,
                    "assigned_at": now,
                }
                for offset, member_id in enumerate(ids)
            ],
        )

    async def _touch_and_reload(self, owner_id: uuid.UUID):
        model = self.owners.model
        await self.db.execute(
            update(model)
            .where(model.id == owner_id)
            .values(updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        await self.db.flush()
        return await self.owners.get(owner_id, self.owner_expand)

    # --- Operations ---

    async def add_members(self, owner_id: uuid.UUID, candidate_ids: Sequence[uuid.UUID]):
        """
        Union ``candidate_ids`` into the owner's reference set.

        Ids already present are left where they are; new ids are appended in
        the order given. A row inserted concurrently after the read below is
        skipped by the store, so the union stays idempotent. Returns the owner
        with its members resolved.
        """
        ids = self._require_candidates(candidate_ids)
        await self._require_owner(owner_id)
        await self._check_members_exist(ids)

        present = await self._positions(owner_id)
        next_position = max(present.values(), default=-1) + 1
        new_ids = [i for i in ids if i not in present]

        await self._append(owner_id, new_ids, next_position, skip_existing=True)
        logger.info(
            f"Added {len(new_ids)} of {len(ids)} {self.member_name} reference(s) "
            f"to {self.owner_name} '{owner_id}'"
        )
        return await self._touch_and_reload(owner_id)

    async def remove_members(self, owner_id: uuid.UUID, candidate_ids: Sequence[uuid.UUID]):
        """Remove ``candidate_ids`` from the set; ids not present are ignored."""
        ids = self._require_candidates(candidate_ids)
        await self._require_owner(owner_id)

        result = await self.db.execute(
            delete(self.association)
            .where(self.owner_column == owner_id, self.member_column.in_(ids))
            .execution_options(synchronize_session=False)
        )
        logger.info(
            f"Removed {result.rowcount} {self.member_name} reference(s) "
            f"from {self.owner_name} '{owner_id}'"
        )
        return await self._touch_and_reload(owner_id)

    async def set_members(self, owner_id: uuid.UUID, candidate_ids: Sequence[uuid.UUID]):
        """
        Replace the whole reference set; an empty list clears it.

        Delete-then-insert: two concurrent replacements of the same owner may
        interleave, and the last one to commit wins.
        """
        ids = unique_ids(candidate_ids)
        await self._require_owner(owner_id)
        await self._check_members_exist(ids)

        await self.db.execute(
            delete(self.association)
            .where(self.owner_column == owner_id)
            .execution_options(synchronize_session=False)
        )
        await self._append(owner_id, ids, 0)
        logger.info(
            f"Set {len(ids)} {self.member_name} reference(s) on {self.owner_name} '{owner_id}'"
        )
        return await self._touch_and_reload(owner_id)

    async def list_members(self, owner_id: uuid.UUID) -> List[Any]:
        """Resolved members in insertion order; references that no longer resolve are skipped."""
        await self._require_owner(owner_id)
        member_model = self.members.model
        result = await self.db.execute(
            select(member_model)
            .join(self.association, self.member_column == member_model.id)
            .where(self.owner_column == owner_id)
            .order_by(self.association.position)
            .options(*self.members.loader_options(self.member_expand))
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    async def has_member(self, owner_id: uuid.UUID, candidate_id: uuid.UUID) -> bool:
        """True iff ``candidate_id`` is in the raw reference set, resolvable or not."""
        await self._require_owner(owner_id)
        result = await self.db.execute(
            select(func.count())
            .select_from(self.association)
            .where(self.owner_column == owner_id, self.member_column == candidate_id)
        )
        return result.scalar_one() > 0

    async def member_ids(self, owner_id: uuid.UUID) -> List[uuid.UUID]:
        """Raw reference set (including dangling ids) in insertion order."""
        await self._require_owner(owner_id)
        return await self._current_ids(owner_id)

    async def clear_owner(self, owner_id: uuid.UUID) -> None:
        await self.db.execute(
            delete(self.association)
            .where(self.owner_column == owner_id)
            .execution_options(synchronize_session=False)
        )

