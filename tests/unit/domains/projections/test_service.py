"""
Tests for the projection lifecycle in domains/projections/service.py
"""

import pytest

from sharedminds.domains.projections.models import (
    NestedScope,
    ProjectionScope,
    ProjectionStatus,
)
from sharedminds.domains.projections.service import PROJECTIONS_TABLE, ProjectionService
from sharedminds.shared.exceptions import (
    EntityNotFoundError,
    InvalidDataError,
    NotAuthorizedError,
)
from sharedminds.shared.permissions.models import DetailLevel
from tests.fixtures.storage_fixtures import FakeStorage


@pytest.fixture
def service(storage: FakeStorage) -> ProjectionService:
    return ProjectionService(storage)


async def offer(service: ProjectionService, can_edit: bool = False):
    return await service.offer(
        event_id="event-1",
        target_user_id="p-target",
        scope=ProjectionScope.TITLE,
        nested_scope=NestedScope.CONTAINER,
        can_edit=can_edit,
        created_by="p-owner",
    )


class TestProjectionService:
    @pytest.mark.asyncio
    async def test_offer_creates_pending(self, service: ProjectionService) -> None:
        projection = await offer(service)

        assert projection.status == ProjectionStatus.PENDING
        assert projection.detail_level == DetailLevel.OVERVIEW

    @pytest.mark.asyncio
    async def test_accept_and_decline(self, service: ProjectionService) -> None:
        projection = await offer(service)

        accepted = await service.accept(projection.id, "p-target")
        assert accepted.status == ProjectionStatus.ACCEPTED
        assert accepted.accepted_at is not None

        declined = await service.decline(projection.id, "p-target")
        assert declined.status == ProjectionStatus.DECLINED

    @pytest.mark.asyncio
    async def test_only_recipient_can_respond(self, service: ProjectionService) -> None:
        projection = await offer(service)
        with pytest.raises(NotAuthorizedError):
            await service.accept(projection.id, "p-someone-else")
        with pytest.raises(EntityNotFoundError):
            await service.accept("missing", "p-target")

    @pytest.mark.asyncio
    async def test_update_keeps_accepted_status(self, service: ProjectionService) -> None:
        projection = await offer(service)
        await service.accept(projection.id, "p-target")

        updated = await offer(service, can_edit=True)

        assert updated.status == ProjectionStatus.ACCEPTED
        assert updated.can_edit is True

    @pytest.mark.asyncio
    async def test_revoke_then_reoffer(self, service: ProjectionService, storage: FakeStorage) -> None:
        await offer(service)

        assert await service.revoke("event-1", "p-target") is True
        assert await service.revoke("event-1", "p-target") is False
        assert await service.list_for_event("event-1") == []

        reoffered = await offer(service)
        assert reoffered.status == ProjectionStatus.PENDING
        assert reoffered.revoked_at is None
        assert len(storage.rows(PROJECTIONS_TABLE)) == 1

    @pytest.mark.asyncio
    async def test_suggested_becomes_pending_on_offer(
        self, service: ProjectionService, storage: FakeStorage
    ) -> None:
        storage.seed(
            PROJECTIONS_TABLE,
            {"event_id": "event-1", "target_user_id": "p-target", "status": "suggested"},
        )

        projection = await offer(service)

        assert projection.status == ProjectionStatus.PENDING

    @pytest.mark.asyncio
    async def test_revoked_projection_cannot_be_accepted(
        self, service: ProjectionService
    ) -> None:
        projection = await offer(service)
        await service.accept(projection.id, "p-target")
        assert await service.revoke("event-1", "p-target") is True

        with pytest.raises(InvalidDataError):
            await service.accept(projection.id, "p-target")

        current = await service.get("event-1", "p-target")
        assert current.status == ProjectionStatus.REVOKED

    @pytest.mark.asyncio
    async def test_revoked_projection_cannot_be_declined(
        self, service: ProjectionService
    ) -> None:
        projection = await offer(service)
        await service.revoke("event-1", "p-target")

        with pytest.raises(InvalidDataError):
            await service.decline(projection.id, "p-target")

        current = await service.get("event-1", "p-target")
        assert current.status == ProjectionStatus.REVOKED

    @pytest.mark.asyncio
    async def test_declined_projection_needs_a_new_offer(
        self, service: ProjectionService
    ) -> None:
        projection = await offer(service)
        await service.decline(projection.id, "p-target")

        with pytest.raises(InvalidDataError):
            await service.accept(projection.id, "p-target")

        await offer(service)
        accepted = await service.accept(projection.id, "p-target")
        assert accepted.status == ProjectionStatus.ACCEPTED

    @pytest.mark.asyncio
    async def test_accept_is_idempotent(self, service: ProjectionService) -> None:
        projection = await offer(service)
        first = await service.accept(projection.id, "p-target")
        second = await service.accept(projection.id, "p-target")

        assert second.status == ProjectionStatus.ACCEPTED
        assert second.accepted_at == first.accepted_at
