"""
Tests for soft-revocation grant storage in shared/permissions/grant_store.py
"""

import pytest

from sharedminds.shared.exceptions import EntityNotFoundError
from sharedminds.shared.permissions.grant_store import GRANTS_TABLE, GrantStore, grant_from_row
from sharedminds.shared.permissions.models import (
    AccessLevel,
    PermissionFlags,
    PermissionRole,
    PermissionSubjectType,
)
from sharedminds.shared.permissions.services import has_access, role_to_flags
from tests.fixtures.storage_fixtures import FakeStorage

USER = PermissionSubjectType.USER


class TestGrantStore:
    @pytest.fixture
    def store(self, storage: FakeStorage) -> GrantStore:
        return GrantStore(storage)

    @pytest.mark.asyncio
    async def test_upsert_creates_single_grant(
        self, store: GrantStore, storage: FakeStorage
    ) -> None:
        grant = await store.upsert(
            "tracker", "t-1", USER, "p-1", role_to_flags(PermissionRole.VIEWER), granted_by="p-0"
        )

        assert grant.permission_role == PermissionRole.VIEWER
        assert grant.granted_by == "p-0"
        assert grant.is_active
        assert len(storage.rows(GRANTS_TABLE)) == 1

    @pytest.mark.asyncio
    async def test_repeat_upsert_updates_in_place(
        self, store: GrantStore, storage: FakeStorage
    ) -> None:
        await store.upsert("tracker", "t-1", USER, "p-1", role_to_flags(PermissionRole.VIEWER))
        grant = await store.upsert(
            "tracker", "t-1", USER, "p-1", role_to_flags(PermissionRole.EDITOR)
        )

        assert grant.permission_role == PermissionRole.EDITOR
        assert grant.flags.can_edit is True
        assert len(storage.rows(GRANTS_TABLE)) == 1

    @pytest.mark.asyncio
    async def test_revoke_keeps_tombstone(self, store: GrantStore, storage: FakeStorage) -> None:
        await store.upsert("tracker", "t-1", USER, "p-1", role_to_flags(PermissionRole.VIEWER))

        assert await store.revoke("tracker", "t-1", USER, "p-1") is True

        rows = storage.rows(GRANTS_TABLE)
        assert len(rows) == 1
        assert rows[0]["revoked_at"] is not None
        assert await store.get("tracker", "t-1", USER, "p-1") is None
        revoked = await store.get("tracker", "t-1", USER, "p-1", include_revoked=True)
        assert revoked is not None and not revoked.is_active

    @pytest.mark.asyncio
    async def test_revoke_twice_is_noop(self, store: GrantStore) -> None:
        await store.upsert("tracker", "t-1", USER, "p-1", role_to_flags(PermissionRole.VIEWER))
        await store.revoke("tracker", "t-1", USER, "p-1")

        assert await store.revoke("tracker", "t-1", USER, "p-1") is False
        assert await store.revoke("tracker", "t-1", USER, "missing") is False

    @pytest.mark.asyncio
    async def test_regrant_restores_revoked_row(
        self, store: GrantStore, storage: FakeStorage
    ) -> None:
        first = await store.upsert(
            "tracker", "t-1", USER, "p-1", role_to_flags(PermissionRole.VIEWER)
        )
        await store.revoke("tracker", "t-1", USER, "p-1")

        restored = await store.upsert(
            "tracker", "t-1", USER, "p-1", role_to_flags(PermissionRole.EDITOR), granted_by="p-9"
        )

        assert restored.id == first.id
        assert restored.is_active
        assert restored.granted_by == "p-9"
        assert len(storage.rows(GRANTS_TABLE)) == 1

    @pytest.mark.asyncio
    async def test_purge_deletes_row(self, store: GrantStore, storage: FakeStorage) -> None:
        await store.upsert("tracker", "t-1", USER, "p-1", role_to_flags(PermissionRole.VIEWER))

        assert await store.revoke("tracker", "t-1", USER, "p-1", purge=True) is True
        assert storage.rows(GRANTS_TABLE) == []

    @pytest.mark.asyncio
    async def test_list_active_excludes_revoked(self, store: GrantStore) -> None:
        await store.upsert("tracker", "t-1", USER, "p-1", role_to_flags(PermissionRole.VIEWER))
        await store.upsert("tracker", "t-1", USER, "p-2", role_to_flags(PermissionRole.EDITOR))
        await store.upsert("tracker", "t-2", USER, "p-3", role_to_flags(PermissionRole.EDITOR))
        await store.revoke("tracker", "t-1", USER, "p-1")

        active = await store.list_active("tracker", "t-1")

        assert [g.subject_id for g in active] == ["p-2"]

    @pytest.mark.asyncio
    async def test_list_for_subjects(self, store: GrantStore) -> None:
        await store.upsert("track", "tr-1", USER, "p-1", role_to_flags(PermissionRole.VIEWER))
        await store.upsert("track", "tr-2", USER, "p-1", role_to_flags(PermissionRole.EDITOR))

        grants = await store.list_for_subjects("track", USER, ["p-1"], ["tr-2"])

        assert [g.entity_id for g in grants] == ["tr-2"]
        assert await store.list_for_subjects("track", USER, []) == []

    @pytest.mark.asyncio
    async def test_restore(self, store: GrantStore) -> None:
        await store.upsert("tracker", "t-1", USER, "p-1", role_to_flags(PermissionRole.VIEWER))
        await store.revoke("tracker", "t-1", USER, "p-1")

        grant = await store.restore("tracker", "t-1", USER, "p-1")

        assert grant.is_active

    @pytest.mark.asyncio
    async def test_restore_missing_raises(self, store: GrantStore) -> None:
        with pytest.raises(EntityNotFoundError):
            await store.restore("tracker", "t-1", USER, "nobody")

    @pytest.mark.asyncio
    async def test_grant_without_view_is_listed_but_denies_access(
        self, store: GrantStore
    ) -> None:
        await store.upsert("track", "track-1", USER, "p-1", PermissionFlags(can_view=False))

        grants = await store.list_active("track", "track-1")

        assert [g.subject_id for g in grants] == ["p-1"]
        assert grants[0].flags.can_view is False
        assert has_access(grants[0].flags, AccessLevel.VIEW) is False


def test_grant_from_row_falls_back_to_role_template() -> None:
    grant = grant_from_row(
        {
            "id": "g-1",
            "entity_type": "tracker",
            "entity_id": "t-1",
            "subject_type": "user",
            "subject_id": "p-1",
            "permission_role": "editor",
            "flags": None,
        }
    )
    assert grant.flags == role_to_flags(PermissionRole.EDITOR)
