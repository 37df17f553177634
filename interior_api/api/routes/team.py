"""Team member endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from interior_api.api.dependencies import get_team
from interior_api.api.errors import NOT_FOUND_RESPONSES, error_response
from interior_api.models.contracts import (
    OrderUpdate,
    TeamListResponse,
    TeamMember,
    TeamMemberCreate,
    TeamMemberUpdate,
)
from interior_api.services.team import TeamService

router = APIRouter(prefix="/team", tags=["team"])

_NOT_FOUND = ("team_member_not_found", "Team member not found")


@router.get("", response_model=TeamListResponse)
async def list_team_members(
    active: bool | None = None,
    limit: int = Query(10, ge=1, le=100),
    page: int = Query(1, ge=1),
    team: TeamService = Depends(get_team),
) -> TeamListResponse:
    """Team members ordered by display order, optionally filtered by status."""
    return await team.list_members(active=active, page=page, limit=limit)


@router.get("/active", response_model=list[TeamMember])
async def list_active_team_members(team: TeamService = Depends(get_team)) -> list[TeamMember]:
    return await team.active_members()


@router.get("/{member_id}", response_model=TeamMember, responses=NOT_FOUND_RESPONSES)
async def get_team_member(member_id: str, team: TeamService = Depends(get_team)):
    member = await team.get(member_id)
    if member is None:
        return error_response(404, *_NOT_FOUND)
    return member


@router.post("", status_code=201, response_model=TeamMember)
async def create_team_member(
    body: TeamMemberCreate, team: TeamService = Depends(get_team)
) -> TeamMember:
    return await team.create(body)


@router.put("/{member_id}", response_model=TeamMember, responses=NOT_FOUND_RESPONSES)
async def update_team_member(
    member_id: str, body: TeamMemberUpdate, team: TeamService = Depends(get_team)
):
    """Partial update: only fields present in the body change."""
    member = await team.update(member_id, body)
    if member is None:
        return error_response(404, *_NOT_FOUND)
    return member


@router.delete("/{member_id}", status_code=204, responses=NOT_FOUND_RESPONSES)
async def delete_team_member(member_id: str, team: TeamService = Depends(get_team)):
    if not await team.delete(member_id):
        return error_response(404, *_NOT_FOUND)


@router.patch(
    "/{member_id}/toggle-status", response_model=TeamMember, responses=NOT_FOUND_RESPONSES
)
async def toggle_team_member_status(member_id: str, team: TeamService = Depends(get_team)):
    member = await team.toggle_status(member_id)
    if member is None:
        return error_response(404, *_NOT_FOUND)
    return member


@router.patch("/{member_id}/order", response_model=TeamMember, responses=NOT_FOUND_RESPONSES)
async def update_team_member_order(
    member_id: str, body: OrderUpdate, team: TeamService = Depends(get_team)
):
    member = await team.set_order(member_id, body.order)
    if member is None:
        return error_response(404, *_NOT_FOUND)
    return member
