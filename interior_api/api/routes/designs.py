"""Design portfolio endpoints.

Listing, featured, category and search only ever return public designs;
the last three also require status "completed".
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends, Query

from interior_api.api.dependencies import get_portfolio
from interior_api.api.errors import NOT_FOUND_RESPONSES, error_response
from interior_api.models.contracts import (
    BeforeAfterPair,
    DesignCategory,
    DesignCollection,
    DesignCreate,
    DesignDetail,
    DesignListResponse,
    DesignSortField,
    DesignStats,
    DesignStatus,
    DesignStyle,
    DesignUpdate,
    LikeResponse,
)
from interior_api.services.portfolio import PortfolioService

router = APIRouter(prefix="/designs", tags=["designs"])

_NOT_FOUND = ("design_not_found", "Design not found")


@router.get("", response_model=DesignListResponse)
async def list_designs(
    category: DesignCategory | None = None,
    design_style: DesignStyle | None = None,
    status: DesignStatus | None = None,
    featured: bool | None = None,
    search: str | None = Query(None, max_length=100),
    sort_by: DesignSortField = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    limit: int = Query(12, ge=1, le=100),
    page: int = Query(1, ge=1),
    portfolio: PortfolioService = Depends(get_portfolio),
) -> DesignListResponse:
    return await portfolio.list_designs(
        category=category,
        design_style=design_style,
        status=status,
        featured=featured,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
        page=page,
        limit=limit,
    )


@router.get("/featured", response_model=DesignCollection)
async def featured_designs(
    limit: int = Query(6, ge=1, le=50),
    portfolio: PortfolioService = Depends(get_portfolio),
) -> DesignCollection:
    return await portfolio.featured(limit)


@router.get("/category/{category}", response_model=DesignCollection)
async def designs_by_category(
    category: DesignCategory,
    limit: int = Query(12, ge=1, le=100),
    portfolio: PortfolioService = Depends(get_portfolio),
) -> DesignCollection:
    return await portfolio.by_category(category, limit)


@router.get("/search", response_model=DesignCollection)
async def search_designs(
    q: str = Query(..., min_length=1, max_length=100),
    limit: int = Query(20, ge=1, le=100),
    portfolio: PortfolioService = Depends(get_portfolio),
) -> DesignCollection:
    """Case-insensitive match on title, description, tags, category and style."""
    return await portfolio.search(q, limit)


@router.get("/stats/overview", response_model=DesignStats)
async def design_stats(portfolio: PortfolioService = Depends(get_portfolio)) -> DesignStats:
    return await portfolio.stats()


@router.get("/{design_id}", response_model=DesignDetail, responses=NOT_FOUND_RESPONSES)
async def get_design(design_id: str, portfolio: PortfolioService = Depends(get_portfolio)):
    """Fetch one design. Each fetch counts as a view."""
    design = await portfolio.get(design_id)
    if design is None:
        return error_response(404, *_NOT_FOUND)
    return design


@router.post("", status_code=201, response_model=DesignDetail)
async def create_design(
    body: DesignCreate, portfolio: PortfolioService = Depends(get_portfolio)
) -> DesignDetail:
    return await portfolio.create(body)


@router.put("/{design_id}", response_model=DesignDetail, responses=NOT_FOUND_RESPONSES)
async def update_design(
    design_id: str, body: DesignUpdate, portfolio: PortfolioService = Depends(get_portfolio)
):
    design = await portfolio.update(design_id, body)
    if design is None:
        return error_response(404, *_NOT_FOUND)
    return design


@router.delete("/{design_id}", status_code=204, responses=NOT_FOUND_RESPONSES)
async def delete_design(design_id: str, portfolio: PortfolioService = Depends(get_portfolio)):
    if not await portfolio.delete(design_id):
        return error_response(404, *_NOT_FOUND)


@router.patch(
    "/{design_id}/toggle-featured", response_model=DesignDetail, responses=NOT_FOUND_RESPONSES
)
async def toggle_featured(design_id: str, portfolio: PortfolioService = Depends(get_portfolio)):
    design = await portfolio.toggle_featured(design_id)
    if design is None:
        return error_response(404, *_NOT_FOUND)
    return design


@router.post("/{design_id}/like", response_model=LikeResponse, responses=NOT_FOUND_RESPONSES)
async def like_design(design_id: str, portfolio: PortfolioService = Depends(get_portfolio)):
    likes = await portfolio.like(design_id)
    if likes is None:
        return error_response(404, *_NOT_FOUND)
    return LikeResponse(id=design_id, likes=likes)


@router.post(
    "/{design_id}/before-after",
    status_code=201,
    response_model=BeforeAfterPair,
    responses=NOT_FOUND_RESPONSES,
)
async def add_before_after(
    design_id: str, body: BeforeAfterPair, portfolio: PortfolioService = Depends(get_portfolio)
):
    pair = await portfolio.add_before_after(design_id, body)
    if pair is None:
        return error_response(404, *_NOT_FOUND)
    return pair
