"""Design portfolio: listing, search, statistics and engagement counters.

Filtering and sorting run in Python over the whole collection; a studio
portfolio is small enough that the store only needs load-all.
"""

from __future__ import annotations

import uuid
from collections import Counter
from datetime import UTC, datetime
from typing import Any

import structlog

from interior_api.models.contracts import (
    BeforeAfterPair,
    Design,
    DesignCollection,
    DesignCreate,
    DesignDetail,
    DesignListResponse,
    DesignSortField,
    DesignStats,
    DesignUpdate,
    NamedCount,
)
from interior_api.services.pagination import paginate
from interior_api.services.team import TeamService
from interior_api.storage.documents import DocumentStore

logger = structlog.get_logger()


def _newest_first(designs: list[Design]) -> list[Design]:
    return sorted(designs, key=lambda d: d.created_at, reverse=True)


def _matches(design: Design, query: str, *, extended: bool) -> bool:
    """Case-insensitive substring search over the text fields of a design.

    ``extended`` also searches the category and style, as the dedicated
    search endpoint does.
    """
    needle = query.lower()
    haystack = [design.title, design.description, *design.tags]
    if extended:
        haystack += [design.category, design.design_style]
    return any(needle in value.lower() for value in haystack)


def _showcase(design: Design) -> bool:
    return design.is_public and design.status == "completed"


def _counts(values: list[str]) -> list[NamedCount]:
    return [NamedCount(name=name, count=count) for name, count in Counter(values).most_common()]


class PortfolioService:
    def __init__(self, store: DocumentStore, team: TeamService) -> None:
        self.store = store
        self.team = team

    async def _all(self) -> list[Design]:
        return [Design.model_validate(doc) for doc in await self.store.all()]

    async def _save(self, design: Design) -> Design:
        await self.store.put(design.id, design.model_dump(mode="json"))
        return design

    async def _detail(self, design: Design) -> DesignDetail:
        member = None
        if design.team_member_id:
            summaries = await self.team.summaries([design.team_member_id])
            member = summaries[0] if summaries else None
        return DesignDetail.model_validate({**design.model_dump(), "team_member": member})

    async def _details(self, designs: list[Design]) -> list[DesignDetail]:
        return [await self._detail(design) for design in designs]

    async def list_designs(
        self,
        *,
        category: str | None = None,
        design_style: str | None = None,
        status: str | None = None,
        featured: bool | None = None,
        search: str | None = None,
        sort_by: DesignSortField = "created_at",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 12,
    ) -> DesignListResponse:
        designs = [d for d in await self._all() if d.is_public]
        if category:
            designs = [d for d in designs if d.category == category]
        if design_style:
            designs = [d for d in designs if d.design_style == design_style]
        if status:
            designs = [d for d in designs if d.status == status]
        if featured:
            designs = [d for d in designs if d.is_featured]
        if search:
            designs = [d for d in designs if _matches(d, search, extended=False)]

        def _key(design: Design) -> Any:
            value = getattr(design, sort_by)
            return value.lower() if isinstance(value, str) else value

        designs.sort(key=_key, reverse=sort_order == "desc")
        page_items, pagination = paginate(designs, page, limit)
        return DesignListResponse(designs=await self._details(page_items), pagination=pagination)

    async def featured(self, limit: int = 6) -> DesignCollection:
        designs = [d for d in await self._all() if d.is_featured and _showcase(d)]
        picked = _newest_first(designs)[:limit]
        return DesignCollection(designs=await self._details(picked), total=len(picked))

    async def by_category(self, category: str, limit: int = 12) -> DesignCollection:
        designs = [d for d in await self._all() if d.category == category and _showcase(d)]
        picked = _newest_first(designs)[:limit]
        return DesignCollection(
            designs=await self._details(picked), total=len(picked), category=category
        )

    async def search(self, query: str, limit: int = 20) -> DesignCollection:
        designs = [
            d for d in await self._all() if _showcase(d) and _matches(d, query, extended=True)
        ]
        picked = _newest_first(designs)[:limit]
        return DesignCollection(designs=await self._details(picked), total=len(picked), query=query)

    async def stats(self) -> DesignStats:
        designs = await self._all()
        public = [d for d in designs if d.is_public]
        return DesignStats(
            total_designs=len(designs),
            public_designs=len(public),
            featured_designs=sum(1 for d in public if d.is_featured),
            total_views=sum(d.views for d in public),
            total_likes=sum(d.likes for d in public),
            by_category=_counts([d.category for d in public]),
            by_style=_counts([d.design_style for d in public]),
        )

    async def get(self, design_id: str, *, count_view: bool = True) -> DesignDetail | None:
        doc = await self.store.get(design_id)
        if doc is None:
            return None
        design = Design.model_validate(doc)
        if count_view:
            design = await self._save(design.model_copy(update={"views": design.views + 1}))
        return await self._detail(design)

    async def create(self, payload: DesignCreate) -> DesignDetail:
        design = Design(id=str(uuid.uuid4()), **payload.model_dump())
        await self._save(design)
        logger.info("design_created", design_id=design.id, category=design.category)
        return await self._detail(design)

    async def update(self, design_id: str, payload: DesignUpdate) -> DesignDetail | None:
        doc = await self.store.get(design_id)
        if doc is None:
            return None
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)
        design = Design.model_validate({**doc, **changes, "updated_at": datetime.now(UTC)})
        await self._save(design)
        logger.info("design_updated", design_id=design_id, fields=sorted(changes))
        return await self._detail(design)

    async def delete(self, design_id: str) -> bool:
        deleted = await self.store.delete(design_id)
        if deleted:
            logger.info("design_deleted", design_id=design_id)
        return deleted

    async def toggle_featured(self, design_id: str) -> DesignDetail | None:
        doc = await self.store.get(design_id)
        if doc is None:
            return None
        design = Design.model_validate(doc)
        design = await self._save(
            design.model_copy(
                update={"is_featured": not design.is_featured, "updated_at": datetime.now(UTC)}
            )
        )
        return await self._detail(design)

    async def like(self, design_id: str) -> int | None:
        doc = await self.store.get(design_id)
        if doc is None:
            return None
        design = Design.model_validate(doc)
        design = await self._save(design.model_copy(update={"likes": design.likes + 1}))
        return design.likes

    async def add_before_after(
        self, design_id: str, pair: BeforeAfterPair
    ) -> BeforeAfterPair | None:
        doc = await self.store.get(design_id)
        if doc is None:
            return None
        design = Design.model_validate(doc)
        await self._save(
            design.model_copy(
                update={
                    "before_after_images": [*design.before_after_images, pair],
                    "updated_at": datetime.now(UTC),
                }
            )
        )
        logger.info("design_before_after_added", design_id=design_id)
        return pair
