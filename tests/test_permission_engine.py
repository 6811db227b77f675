"""Tests for permission resolution, checks, grants and revocation."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from neo_sharing.core.exceptions import InvalidArgumentError, NotFoundError, TransportError, UnauthorizedError
from neo_sharing.core.value_objects import FileRef, FolderRef, PermissionType, ResourceKind
from neo_sharing.infrastructure.repositories import MemoryResourceStore
from neo_sharing.infrastructure.retry import RetryPolicy
from neo_sharing.notifications import EventPublisher
from neo_sharing.permissions import PermissionEngine

from .conftest import published, seed_tree


def _levels(views):
    return {(v.resource_type, v.resource_id): v.permission_type for v in views}


class TestResolveUserPermissions:

    @pytest.mark.asyncio
    async def test_owner_gets_implicit_admin_without_grant_rows(self, engine, store):
        views = await engine.resolve_user_permissions(1)

        assert len(views) == 8
        assert all(v.is_owner and v.id == 0 for v in views)
        assert set(_levels(views).values()) == {PermissionType.ADMIN}
        assert await store.list_grants_for_user(1, ResourceKind.FOLDER) == []

    @pytest.mark.asyncio
    async def test_explicit_grants_are_listed_once(self, engine):
        await engine.grant(1, FileRef(1), PermissionType.READER, "alice@example.com")
        await engine.grant(1, FileRef(1), PermissionType.CONTRIBUTOR, "alice@example.com")

        views = await engine.resolve_user_permissions(2)

        assert _levels(views) == {(ResourceKind.FILE, 1): PermissionType.CONTRIBUTOR}
        assert views[0].resource_name == "plan.txt"
        assert not views[0].is_owner

    @pytest.mark.asyncio
    async def test_owner_with_explicit_grant_is_not_duplicated(self, engine, store):
        await store.upsert_grant(1, FolderRef(3), PermissionType.READER)

        views = await engine.resolve_user_permissions(1)
        private = [v for v in views if v.resource_type is ResourceKind.FOLDER and v.resource_id == 3]

        assert len(private) == 1
        assert private[0].id != 0
        assert private[0].is_owner

    @pytest.mark.asyncio
    async def test_user_without_access_has_no_entries(self, engine):
        assert await engine.resolve_user_permissions(3) == []


class TestHasPermission:

    @pytest.mark.asyncio
    async def test_owner_has_every_level(self, engine):
        for level in PermissionType:
            assert await engine.has_permission(1, FolderRef(1), level)

    @pytest.mark.asyncio
    async def test_grant_satisfies_weaker_levels_only(self, engine):
        await engine.grant(1, FileRef(3), PermissionType.CONTRIBUTOR, "bob@example.com")

        assert await engine.has_permission(3, FileRef(3), "reader")
        assert await engine.has_permission(3, FileRef(3), "Contributor")
        assert not await engine.has_permission(3, FileRef(3), "ADMIN")

    @pytest.mark.asyncio
    async def test_reader_does_not_satisfy_admin(self, engine):
        await engine.grant(1, FileRef(3), PermissionType.READER, "bob@example.com")
        assert not await engine.has_permission(3, FileRef(3), PermissionType.ADMIN)

    @pytest.mark.asyncio
    async def test_no_grant_means_no_permission(self, engine):
        assert not await engine.has_permission(2, FolderRef(1), PermissionType.READER)

    @pytest.mark.asyncio
    async def test_invalid_level_is_rejected(self, engine):
        with pytest.raises(InvalidArgumentError, match="Invalid permission type"):
            await engine.has_permission(2, FolderRef(1), "Owner")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("user_id", [0, -5])
    async def test_invalid_user_id_is_rejected(self, engine, user_id):
        with pytest.raises(InvalidArgumentError):
            await engine.has_permission(user_id, FolderRef(1), PermissionType.READER)

    @pytest.mark.asyncio
    async def test_malformed_reference_is_rejected(self, engine):
        with pytest.raises(InvalidArgumentError):
            await engine.has_permission(2, 1, PermissionType.READER)


class TestCanModify:

    @pytest.mark.asyncio
    async def test_owner_admin_and_contributor_can_modify(self, engine):
        await engine.grant(1, FileRef(1), PermissionType.ADMIN, "alice@example.com")
        await engine.grant(1, FileRef(1), PermissionType.CONTRIBUTOR, "bob@example.com")

        assert await engine.can_modify(1, FileRef(1))
        assert await engine.can_modify(2, FileRef(1))
        assert await engine.can_modify(3, FileRef(1))

    @pytest.mark.asyncio
    async def test_reader_cannot_modify(self, engine):
        await engine.grant(1, FileRef(1), PermissionType.READER, "alice@example.com")
        assert not await engine.can_modify(2, FileRef(1))


class TestGrant:

    @pytest.mark.asyncio
    async def test_folder_grant_cascades_to_all_descendants(self, engine):
        result = await engine.grant(1, FolderRef(1), PermissionType.CONTRIBUTOR, "alice@example.com")

        assert result.notification_sent
        assert result.resource_type is ResourceKind.FOLDER
        assert result.permission.resource_name == "Projects"
        assert _levels(await engine.resolve_user_permissions(2)) == {
            (ResourceKind.FOLDER, 1): PermissionType.CONTRIBUTOR,
            (ResourceKind.FOLDER, 2): PermissionType.CONTRIBUTOR,
            (ResourceKind.FOLDER, 4): PermissionType.CONTRIBUTOR,
            (ResourceKind.FILE, 1): PermissionType.CONTRIBUTOR,
            (ResourceKind.FILE, 2): PermissionType.CONTRIBUTOR,
            (ResourceKind.FILE, 4): PermissionType.CONTRIBUTOR,
        }

    @pytest.mark.asyncio
    async def test_cascade_does_not_touch_siblings(self, engine):
        await engine.grant(1, FolderRef(2), PermissionType.READER, "alice@example.com")

        levels = _levels(await engine.resolve_user_permissions(2))

        assert (ResourceKind.FOLDER, 1) not in levels
        assert (ResourceKind.FILE, 1) not in levels
        assert levels[(ResourceKind.FILE, 4)] is PermissionType.READER

    @pytest.mark.asyncio
    async def test_every_cascaded_resource_is_announced(self, engine, bus):
        await engine.grant(1, FolderRef(1), PermissionType.READER, "alice@example.com")

        events = published(bus, "ResourceShared")

        assert len(events) == 6
        assert {e["RecipientEmail"] for e in events} == {"alice@example.com"}
        assert {(e["FolderId"], e["FileId"]) for e in events} == {
            (1, None), (2, None), (4, None), (None, 1), (None, 2), (None, 4),
        }
        assert events[0]["FolderId"] == 1
        assert events[0]["ResourceName"] == "Projects"

    @pytest.mark.asyncio
    async def test_regrant_updates_level_in_place(self, engine, store):
        first = await engine.grant(1, FileRef(1), PermissionType.READER, "alice@example.com")
        second = await engine.grant(1, FileRef(1), PermissionType.ADMIN, "alice@example.com")

        grants = await store.list_grants_for_user(2, ResourceKind.FILE)
        assert len(grants) == 1
        assert grants[0].permission_type is PermissionType.ADMIN
        assert first.permission.id == second.permission.id

    @pytest.mark.asyncio
    async def test_granting_same_level_twice_leaves_one_row(self, engine, store):
        await engine.grant(1, FolderRef(3), PermissionType.READER, "bob@example.com")
        await engine.grant(1, FolderRef(3), PermissionType.READER, "bob@example.com")

        assert len(await store.list_grants_for_user(3, ResourceKind.FOLDER)) == 1
        assert len(await store.list_grants_for_user(3, ResourceKind.FILE)) == 1

    @pytest.mark.asyncio
    async def test_grant_targets_recipient_not_actor(self, engine, store):
        await engine.grant(1, FileRef(1), PermissionType.CONTRIBUTOR, "alice@example.com")
        await engine.grant(2, FileRef(1), PermissionType.READER, "bob@example.com")

        alice = await store.find_grant(2, FileRef(1))
        bob = await store.find_grant(3, FileRef(1))
        assert alice.permission_type is PermissionType.CONTRIBUTOR
        assert bob.permission_type is PermissionType.READER

    @pytest.mark.asyncio
    async def test_reader_cannot_grant(self, engine):
        await engine.grant(1, FileRef(1), PermissionType.READER, "alice@example.com")

        with pytest.raises(UnauthorizedError):
            await engine.grant(2, FileRef(1), PermissionType.READER, "bob@example.com")

    @pytest.mark.asyncio
    async def test_stranger_cannot_grant(self, engine):
        with pytest.raises(UnauthorizedError):
            await engine.grant(3, FolderRef(1), PermissionType.READER, "alice@example.com")

    @pytest.mark.asyncio
    async def test_unknown_recipient(self, engine):
        with pytest.raises(NotFoundError, match="nobody@example.com"):
            await engine.grant(1, FolderRef(1), PermissionType.READER, "nobody@example.com")

    @pytest.mark.asyncio
    async def test_empty_recipient(self, engine):
        with pytest.raises(InvalidArgumentError):
            await engine.grant(1, FolderRef(1), PermissionType.READER, "  ")

    @pytest.mark.asyncio
    async def test_transport_failure_keeps_the_grant(self, store):
        bus = AsyncMock()
        bus.publish.side_effect = TransportError("bus down")
        publisher = EventPublisher(bus, retry_policy=RetryPolicy(max_retries=1, initial_delay_ms=0, max_delay_ms=0))
        engine = PermissionEngine(store, publisher)

        result = await engine.grant(1, FolderRef(2), PermissionType.READER, "alice@example.com")

        assert result.notification_sent is False
        assert await store.find_grant(2, FolderRef(2)) is not None
        assert await store.find_grant(2, FileRef(4)) is not None


class TestRevoke:

    @pytest.mark.asyncio
    async def test_revoke_existing_grant(self, engine, store):
        result = await engine.grant(1, FileRef(1), PermissionType.READER, "alice@example.com")

        assert await engine.revoke(result.permission.id, is_file_scoped=True)
        assert await store.find_grant(2, FileRef(1)) is None

    @pytest.mark.asyncio
    async def test_revoke_missing_grant_returns_false(self, engine, store):
        await engine.grant(1, FileRef(1), PermissionType.READER, "alice@example.com")

        assert not await engine.revoke(999, is_file_scoped=True)
        assert len(await store.list_grants_for_user(2, ResourceKind.FILE)) == 1

    @pytest.mark.asyncio
    async def test_revoke_uses_the_right_table(self, engine, store):
        result = await engine.grant(1, FileRef(1), PermissionType.READER, "alice@example.com")

        assert not await engine.revoke(result.permission.id, is_file_scoped=False)
        assert await store.find_grant(2, FileRef(1)) is not None

    @pytest.mark.asyncio
    async def test_revoke_does_not_cascade(self, engine, store):
        result = await engine.grant(1, FolderRef(1), PermissionType.READER, "alice@example.com")

        await engine.revoke(result.permission.id, is_file_scoped=False)

        assert await store.find_grant(2, FolderRef(1)) is None
        assert await store.find_grant(2, FolderRef(2)) is not None
        assert await store.find_grant(2, FileRef(1)) is not None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("grant_id", [0, -1])
    async def test_revoke_rejects_non_positive_ids(self, engine, grant_id):
        with pytest.raises(InvalidArgumentError):
            await engine.revoke(grant_id, is_file_scoped=True)


class TestFolderDirectory:

    @pytest.mark.asyncio
    async def test_list_shared_users(self, engine):
        await engine.grant(1, FolderRef(3), PermissionType.READER, "alice@example.com")
        await engine.grant(1, FolderRef(3), PermissionType.ADMIN, "bob@example.com")

        shared = await engine.list_shared_users(3)

        assert {(u.username, u.permission_type) for u in shared} == {
            ("alice", PermissionType.READER),
            ("bob", PermissionType.ADMIN),
        }

    @pytest.mark.asyncio
    async def test_list_shared_users_of_unshared_folder(self, engine):
        assert await engine.list_shared_users(3) == []

    @pytest.mark.asyncio
    async def test_get_folder_owner(self, engine):
        owner = await engine.get_folder_owner(2)
        assert owner.email == "owner@example.com"
        assert await engine.get_folder_owner(99) is None


class InterleavingStore(MemoryResourceStore):
    """Store that yields before every grant write and records the write order."""

    def __init__(self):
        super().__init__()
        self.writes = []

    async def upsert_grant(self, user_id, resource, permission_type):
        await asyncio.sleep(0)
        self.writes.append((user_id, resource, permission_type))
        return await super().upsert_grant(user_id, resource, permission_type)


class TestOverlappingGrants:

    @pytest.mark.asyncio
    async def test_concurrent_cascades_keep_last_written_level(self, publisher):
        store = seed_tree(InterleavingStore())
        engine = PermissionEngine(store, publisher)

        await asyncio.gather(
            engine.grant(1, FolderRef(1), PermissionType.READER, "alice@example.com"),
            engine.grant(1, FolderRef(1), PermissionType.ADMIN, "alice@example.com"),
        )

        covered = [FolderRef(1), FolderRef(2), FolderRef(4), FileRef(1), FileRef(2), FileRef(4)]
        for ref in covered:
            levels = [level for user_id, written, level in store.writes if written == ref]
            assert len(levels) == 2
            assert (await store.find_grant(2, ref)).permission_type is levels[-1]

        assert len(await store.list_grants_for_user(2, ResourceKind.FOLDER)) == 3
        assert len(await store.list_grants_for_user(2, ResourceKind.FILE)) == 3
        assert await store.find_grant(2, FolderRef(3)) is None
