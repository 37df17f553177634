"""Team member management on top of a document store."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

import structlog

from interior_api.models.contracts import (
    TeamListResponse,
    TeamMember,
    TeamMemberCreate,
    TeamMemberSummary,
    TeamMemberUpdate,
)
from interior_api.services.pagination import paginate
from interior_api.storage.documents import DocumentStore

logger = structlog.get_logger()


def _sort_key(member: TeamMember) -> tuple[int, datetime]:
    return member.order, member.created_at


class TeamService:
    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def _all(self) -> list[TeamMember]:
        members = [TeamMember.model_validate(doc) for doc in await self.store.all()]
        members.sort(key=_sort_key)
        return members

    async def _save(self, member: TeamMember) -> TeamMember:
        await self.store.put(member.id, member.model_dump(mode="json"))
        return member

    async def list_members(
        self, *, active: bool | None = None, page: int = 1, limit: int = 10
    ) -> TeamListResponse:
        members = await self._all()
        if active is not None:
            members = [m for m in members if m.is_active is active]
        page_items, pagination = paginate(members, page, limit)
        return TeamListResponse(team_members=page_items, pagination=pagination)

    async def active_members(self) -> list[TeamMember]:
        return [m for m in await self._all() if m.is_active]

    async def get(self, member_id: str) -> TeamMember | None:
        doc = await self.store.get(member_id)
        return TeamMember.model_validate(doc) if doc is not None else None

    async def summaries(self, member_ids: list[str]) -> list[TeamMemberSummary]:
        """Summaries for the given ids in the given order; unknown ids are skipped."""
        out: list[TeamMemberSummary] = []
        for member_id in member_ids:
            member = await self.get(member_id)
            if member is not None:
                out.append(
                    TeamMemberSummary(
                        id=member.id,
                        name=member.name,
                        position=member.position,
                        image=member.image,
                    )
                )
        return out

    async def create(self, payload: TeamMemberCreate) -> TeamMember:
        member = TeamMember(id=str(uuid.uuid4()), **payload.model_dump())
        await self._save(member)
        logger.info("team_member_created", member_id=member.id, name=member.name)
        return member

    async def update(self, member_id: str, payload: TeamMemberUpdate) -> TeamMember | None:
        member = await self.get(member_id)
        if member is None:
            return None
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        updated = TeamMember.model_validate(
            {**member.model_dump(), **changes, "updated_at": datetime.now(UTC)}
        )
        await self._save(updated)
        logger.info("team_member_updated", member_id=member_id, fields=sorted(changes))
        return updated

    async def delete(self, member_id: str) -> bool:
        deleted = await self.store.delete(member_id)
        if deleted:
            logger.info("team_member_deleted", member_id=member_id)
        return deleted

    async def toggle_status(self, member_id: str) -> TeamMember | None:
        member = await self.get(member_id)
        if member is None:
            return None
        updated = member.model_copy(
            update={"is_active": not member.is_active, "updated_at": datetime.now(UTC)}
        )
        return await self._save(updated)

    async def set_order(self, member_id: str, order: int) -> TeamMember | None:
        member = await self.get(member_id)
        if member is None:
            return None
        updated = member.model_copy(update={"order": order, "updated_at": datetime.now(UTC)})
        return await self._save(updated)
