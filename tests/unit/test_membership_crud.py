"""
Tests for the relationship engine on both owner/member pairs.
"""
import uuid
from unittest.mock import AsyncMock, patch

import pytest

from rbac_service.crud.membership_crud import unique_ids
from rbac_service.crud.permission_crud import PermissionCRUD
from rbac_service.crud.role_crud import role_permissions
from rbac_service.crud.user_crud import user_roles
from rbac_service.exceptions import InvalidInputError, NotFoundError
from tests.fixtures.helpers import make_permission, make_role, make_user


def test_unique_ids_keeps_first_occurrence():
    a, b, c = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
    assert unique_ids([b, a, b, c, a]) == [b, a, c]


class TestAddMembers:
    @pytest.mark.asyncio
    async def test_add_is_idempotent(self, db_session):
        read = await make_permission(db_session, "read", "reports")
        write = await make_permission(db_session, "write", "reports")
        role = await make_role(db_session, "analyst")
        engine = role_permissions(db_session)

        once = await engine.add_members(role.id, [read.id, write.id])
        once_ids = [p.id for p in once.permissions]
        twice = await engine.add_members(role.id, [read.id, write.id])

        assert [p.id for p in twice.permissions] == once_ids == [read.id, write.id]
        assert await engine.member_ids(role.id) == [read.id, write.id]

    @pytest.mark.asyncio
    async def test_add_skips_rows_written_after_the_membership_read(self, db_session):
        read = await make_permission(db_session, "read", "reports")
        role = await make_role(db_session, "analyst", [read.id])
        engine = role_permissions(db_session)

        # A concurrent writer added the row after this call read the set
        with patch.object(engine, "_positions", new_callable=AsyncMock, return_value={}):
            role = await engine.add_members(role.id, [read.id])

        assert [p.id for p in role.permissions] == [read.id]
        assert await engine.member_ids(role.id) == [read.id]

    @pytest.mark.asyncio
    async def test_add_appends_new_ids_after_existing_ones(self, db_session):
        first = await make_permission(db_session, "read", "reports")
        second = await make_permission(db_session, "write", "reports")
        third = await make_permission(db_session, "delete", "reports")
        role = await make_role(db_session, "analyst", [second.id])
        engine = role_permissions(db_session)

        role = await engine.add_members(role.id, [third.id, second.id, first.id, third.id])

        assert [p.id for p in role.permissions] == [second.id, third.id, first.id]

    @pytest.mark.asyncio
    async def test_add_bumps_owner_updated_at(self, db_session):
        read = await make_permission(db_session, "read", "reports")
        role = await make_role(db_session, "analyst")
        engine = role_permissions(db_session)
        before = (await engine.owners.get(role.id)).updated_at

        after = await engine.add_members(role.id, [read.id])

        assert after.updated_at >= before

    @pytest.mark.asyncio
    async def test_add_empty_is_invalid_input(self, db_session):
        role = await make_role(db_session, "analyst")
        with pytest.raises(InvalidInputError):
            await role_permissions(db_session).add_members(role.id, [])

    @pytest.mark.asyncio
    async def test_add_to_missing_owner_is_not_found(self, db_session):
        read = await make_permission(db_session, "read", "reports")
        with pytest.raises(NotFoundError):
            await role_permissions(db_session).add_members(uuid.uuid4(), [read.id])

    @pytest.mark.asyncio
    async def test_dangling_ids_are_accepted_by_default(self, db_session):
        role = await make_role(db_session, "analyst")
        ghost = uuid.uuid4()
        engine = role_permissions(db_session)

        role = await engine.add_members(role.id, [ghost])

        assert role.permissions == []
        assert await engine.has_member(role.id, ghost) is True

    @pytest.mark.asyncio
    async def test_validation_rejects_unknown_ids_before_writing(self, db_session):
        read = await make_permission(db_session, "read", "reports")
        role = await make_role(db_session, "analyst")
        ghost = uuid.uuid4()
        engine = role_permissions(db_session, validate_members=True)

        with pytest.raises(InvalidInputError) as exc_info:
            await engine.add_members(role.id, [read.id, ghost])

        assert str(ghost) in exc_info.value.message
        assert exc_info.value.details == {"missing": [str(ghost)]}
        assert await engine.member_ids(role.id) == []


class TestRemoveMembers:
    @pytest.mark.asyncio
    async def test_remove_ignores_ids_not_present(self, db_session):
        read = await make_permission(db_session, "read", "reports")
        write = await make_permission(db_session, "write", "reports")
        role = await make_role(db_session, "analyst", [read.id, write.id])
        engine = role_permissions(db_session)

        role = await engine.remove_members(role.id, [read.id, uuid.uuid4()])

        assert [p.id for p in role.permissions] == [write.id]
        assert await engine.has_member(role.id, read.id) is False

    @pytest.mark.asyncio
    async def test_remove_empty_is_invalid_input(self, db_session):
        role = await make_role(db_session, "analyst")
        with pytest.raises(InvalidInputError):
            await role_permissions(db_session).remove_members(role.id, [])


class TestSetMembers:
    @pytest.mark.asyncio
    async def test_set_empty_clears(self, db_session):
        read = await make_permission(db_session, "read", "reports")
        role = await make_role(db_session, "analyst", [read.id])
        engine = role_permissions(db_session)

        role = await engine.set_members(role.id, [])

        assert role.permissions == []
        assert await engine.member_ids(role.id) == []

    @pytest.mark.asyncio
    async def test_set_replaces_in_given_order(self, db_session):
        read = await make_permission(db_session, "read", "reports")
        write = await make_permission(db_session, "write", "reports")
        share = await make_permission(db_session, "share", "reports")
        role = await make_role(db_session, "analyst", [read.id, write.id])

        role = await role_permissions(db_session).set_members(role.id, [share.id, read.id, share.id])

        assert [p.id for p in role.permissions] == [share.id, read.id]

    @pytest.mark.asyncio
    async def test_set_on_missing_owner_is_not_found(self, db_session):
        with pytest.raises(NotFoundError):
            await role_permissions(db_session).set_members(uuid.uuid4(), [])


class TestReads:
    @pytest.mark.asyncio
    async def test_list_members_skips_deleted_members(self, db_session):
        read = await make_permission(db_session, "read", "reports")
        write = await make_permission(db_session, "write", "reports")
        role = await make_role(db_session, "analyst", [read.id, write.id])
        await PermissionCRUD(db_session).hard_delete(read.id)
        await db_session.commit()
        engine = role_permissions(db_session)

        members = await engine.list_members(role.id)

        assert [p.id for p in members] == [write.id]
        # The raw reference is still there
        assert await engine.has_member(role.id, read.id) is True

    @pytest.mark.asyncio
    async def test_list_members_of_missing_owner_is_not_found(self, db_session):
        with pytest.raises(NotFoundError):
            await role_permissions(db_session).list_members(uuid.uuid4())

    @pytest.mark.asyncio
    async def test_has_member_of_missing_owner_is_not_found(self, db_session):
        with pytest.raises(NotFoundError):
            await role_permissions(db_session).has_member(uuid.uuid4(), uuid.uuid4())


class TestUserRoles:
    @pytest.mark.asyncio
    async def test_listed_roles_carry_their_permissions_in_insertion_order(self, seeded, db_session):
        roles = await user_roles(db_session).list_members(seeded.alice.id)

        assert [r.name for r in roles] == ["editor"]
        assert [(p.action, p.resource) for p in roles[0].permissions] == [
            ("read", "users"),
            ("write", "users"),
        ]

    @pytest.mark.asyncio
    async def test_removing_a_permission_shows_on_the_role(self, seeded, db_session):
        engine = role_permissions(db_session)

        role = await engine.remove_members(seeded.editor.id, [seeded.read_users.id])

        assert [(p.action, p.resource) for p in role.permissions] == [("write", "users")]
        assert await engine.has_member(seeded.editor.id, seeded.read_users.id) is False

    @pytest.mark.asyncio
    async def test_owner_reload_resolves_nested_permissions(self, db_session):
        read = await make_permission(db_session, "read", "reports")
        role = await make_role(db_session, "analyst", [read.id])
        user = await make_user(db_session, "bob")

        user = await user_roles(db_session).add_members(user.id, [role.id])

        assert [r.id for r in user.roles] == [role.id]
        assert [p.id for p in user.roles[0].permissions] == [read.id]
