"""
Tests for user use cases: the listing composer, uniqueness checks and
password handling.
"""
import uuid
from unittest.mock import AsyncMock, patch

import pytest

from rbac_service.crud.user_crud import UserCRUD
from rbac_service.exceptions import ConflictError, InvalidInputError, NotFoundError
from rbac_service.schemas.user_schemas import UserCreate, UserListFilters, UserUpdate
from rbac_service.security import verify_password
from rbac_service.services import role_service, user_service
from tests.fixtures.helpers import DEFAULT_PASSWORD, make_role, make_user


class TestListUsers:
    @pytest.mark.asyncio
    async def test_unknown_role_name_short_circuits(self, seeded, db_session):
        with patch.object(UserCRUD, "find_page", new_callable=AsyncMock) as find_page:
            page = await user_service.list_users(
                db_session, UserListFilters(role="no-such-role"), page=1, page_size=20
            )

        find_page.assert_not_awaited()
        assert page.items == []
        assert page.total == 0
        assert page.total_pages == 0

    @pytest.mark.asyncio
    async def test_role_name_is_case_insensitive(self, seeded, db_session):
        page = await user_service.list_users(db_session, UserListFilters(role="  EDITOR "))
        assert [u.username for u in page.items] == ["alice"]

    @pytest.mark.asyncio
    async def test_role_id_is_used_directly(self, seeded, db_session):
        await make_user(db_session, "bob")
        page = await user_service.list_users(
            db_session, UserListFilters(role=str(seeded.editor.id))
        )
        assert [u.username for u in page.items] == ["alice"]

    @pytest.mark.asyncio
    async def test_unknown_role_id_gives_empty_page(self, seeded, db_session):
        page = await user_service.list_users(
            db_session, UserListFilters(role=str(uuid.uuid4()))
        )
        assert page.total == 0

    @pytest.mark.asyncio
    async def test_search_matches_username_or_email(self, db_session):
        await make_user(db_session, "carol", email="carol@corp.io")
        await make_user(db_session, "dave", email="dave@home.io")
        await make_user(db_session, "corporal", email="x@home.io")

        page = await user_service.list_users(db_session, UserListFilters(search="CORP"))

        assert sorted(u.username for u in page.items) == ["carol", "corporal"]

    @pytest.mark.asyncio
    async def test_criteria_are_combined(self, seeded, db_session):
        bob = await make_user(db_session, "bob", [seeded.editor.id])
        await user_service.verify_email(db_session, bob.id)
        await db_session.commit()

        page = await user_service.list_users(
            db_session, UserListFilters(role="editor", email_verified=True, is_active=True)
        )

        assert [u.username for u in page.items] == ["bob"]

    @pytest.mark.asyncio
    async def test_newest_first_with_roles_resolved(self, seeded, db_session):
        await make_user(db_session, "bob")
        page = await user_service.list_users(db_session, UserListFilters())

        assert [u.username for u in page.items] == ["bob", "alice"]
        alice = page.items[1]
        assert [r.name for r in alice.roles] == ["editor"]
        assert len(alice.roles[0].permissions) == 2


class TestCreateAndUpdate:
    @pytest.mark.asyncio
    async def test_password_is_hashed(self, db_session):
        user = await make_user(db_session, "erin")
        assert user.password != DEFAULT_PASSWORD
        assert verify_password(DEFAULT_PASSWORD, user.password)

    @pytest.mark.asyncio
    async def test_initial_roles_are_assigned(self, db_session):
        role = await make_role(db_session, "viewer")
        user = await make_user(db_session, "erin", [role.id, role.id])
        assert [r.id for r in user.roles] == [role.id]

    @pytest.mark.asyncio
    async def test_duplicate_username_conflicts(self, seeded, db_session):
        with pytest.raises(ConflictError):
            await user_service.create_user(
                db_session,
                UserCreate(username="alice", email="other@example.com", password="password123"),
            )

    @pytest.mark.asyncio
    async def test_duplicate_email_conflicts_case_insensitively(self, seeded, db_session):
        with pytest.raises(ConflictError):
            await user_service.create_user(
                db_session,
                UserCreate(username="alice2", email="ALICE@example.com", password="password123"),
            )

    @pytest.mark.asyncio
    async def test_update_to_taken_email_conflicts(self, seeded, db_session):
        bob = await make_user(db_session, "bob")
        with pytest.raises(ConflictError):
            await user_service.update_user(
                db_session, bob.id, UserUpdate(email="alice@example.com")
            )

    @pytest.mark.asyncio
    async def test_update_keeping_own_username_is_allowed(self, seeded, db_session):
        user = await user_service.update_user(
            db_session, seeded.alice.id, UserUpdate(username="alice", email_verified=True)
        )
        assert user.email_verified is True

    @pytest.mark.asyncio
    async def test_update_rehashes_password(self, seeded, db_session):
        user = await user_service.update_user(
            db_session, seeded.alice.id, UserUpdate(password="brand-new-secret")
        )
        assert verify_password("brand-new-secret", user.password)

    @pytest.mark.asyncio
    async def test_empty_update_is_invalid(self, seeded, db_session):
        with pytest.raises(InvalidInputError):
            await user_service.update_user(db_session, seeded.alice.id, UserUpdate())

    @pytest.mark.asyncio
    async def test_update_missing_user_is_not_found(self, db_session):
        with pytest.raises(NotFoundError):
            await user_service.update_user(db_session, uuid.uuid4(), UserUpdate(is_active=False))


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_record_login_sets_last_login(self, seeded, db_session):
        assert seeded.alice.last_login is None
        user = await user_service.record_login(db_session, seeded.alice.id)
        assert user.last_login is not None

    @pytest.mark.asyncio
    async def test_hard_delete_keeps_role(self, seeded, db_session):
        await user_service.delete_user(db_session, seeded.alice.id)
        await db_session.commit()

        with pytest.raises(NotFoundError):
            await user_service.get_user(db_session, seeded.alice.id)
        assert (await user_service.list_users(db_session, UserListFilters())).total == 0

    @pytest.mark.asyncio
    async def test_deleted_role_disappears_from_user(self, seeded, db_session):
        await role_service.delete_role(db_session, seeded.editor.id)
        await db_session.commit()

        user = await user_service.get_user(db_session, seeded.alice.id)
        assert user.roles == []
        assert await user_service.user_has_role(db_session, seeded.alice.id, seeded.editor.id)

    @pytest.mark.asyncio
    async def test_stats(self, seeded, db_session):
        bob = await make_user(db_session, "bob")
        await make_user(db_session, "carol")
        await make_user(db_session, "dave")
        await user_service.verify_email(db_session, bob.id)
        await user_service.soft_delete_user(db_session, seeded.alice.id)

        stats = await user_service.get_stats(db_session)

        assert stats.total == 4
        assert stats.active == 3
        assert stats.inactive == 1
        assert stats.verified == 1
        assert stats.unverified == 3
        assert stats.active_percentage == 75.0
        assert stats.verified_percentage == 25.0
