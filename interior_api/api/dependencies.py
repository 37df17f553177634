"""Request-scoped accessors for the services built at startup (``app.state``)."""

from __future__ import annotations

from fastapi import Request

from interior_api.chatbot.service import ChatbotService
from interior_api.models.contracts import TransportMetadata
from interior_api.services.portfolio import PortfolioService
from interior_api.services.team import TeamService
from interior_api.services.uploads import UploadService


def get_chatbot(request: Request) -> ChatbotService:
    return request.app.state.chatbot


def get_team(request: Request) -> TeamService:
    return request.app.state.team


def get_portfolio(request: Request) -> PortfolioService:
    return request.app.state.portfolio


def get_uploads(request: Request) -> UploadService:
    return request.app.state.uploads


def transport_metadata(
    request: Request, extra: dict[str, str] | None = None, *, form_type: str | None = None
) -> TransportMetadata:
    """Origin details of an HTTP request; client-supplied values win where given."""
    extra = extra or {}
    return TransportMetadata(
        origin=extra.get("origin") or "http",
        remote_address=extra.get("remote_address")
        or (request.client.host if request.client else None),
        user_agent=extra.get("user_agent") or request.headers.get("user-agent"),
        form_type=form_type or extra.get("form_type"),
    )
