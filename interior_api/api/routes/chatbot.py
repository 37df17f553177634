"""Chatbot endpoints: conversations over plain HTTP, transcripts, analytics,
and the website contact form."""

from __future__ import annotations

from datetime import datetime

import structlog
from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from pydantic import ValidationError

from interior_api.api.dependencies import get_chatbot, get_uploads, transport_metadata
from interior_api.api.errors import NOT_FOUND_RESPONSES, error_response
from interior_api.api.routes.uploads import store_upload
from interior_api.chatbot.service import ChatbotService
from interior_api.models.contracts import (
    ChatAnalytics,
    ChatExchange,
    ChatRecord,
    ContactForm,
    ConversationDeleted,
    ConversationExport,
    ConversationHistory,
    ConversationSummary,
    ErrorResponse,
    ParticipantConversations,
    PreferencesUpdated,
    SendMessageRequest,
    StartConversationRequest,
    UpdatePreferencesRequest,
)
from interior_api.services.uploads import UploadRejected, UploadService

logger = structlog.get_logger()

router = APIRouter(prefix="/chatbot", tags=["chatbot"])

_NOT_FOUND = ("conversation_not_found", "No conversation found for this id")


@router.post("/conversations", status_code=201, response_model=ChatRecord)
async def start_conversation(
    body: StartConversationRequest,
    request: Request,
    chatbot: ChatbotService = Depends(get_chatbot),
) -> ChatRecord:
    """Open a conversation and return its stored greeting record."""
    return await chatbot.start_conversation(
        body.participant_id, body.initial_message, transport_metadata(request)
    )


@router.post("/messages", response_model=ChatExchange)
async def send_message(
    body: SendMessageRequest,
    request: Request,
    chatbot: ChatbotService = Depends(get_chatbot),
) -> ChatExchange:
    exchange = await chatbot.exchange(
        body.message,
        body.conversation_id,
        body.participant_id,
        transport_metadata(request, body.metadata),
    )
    return ChatExchange(
        user_message=exchange.user_record,
        bot_message=exchange.bot_record,
        is_complete=exchange.outcome.is_complete,
        next_steps=exchange.outcome.next_steps,
    )


@router.get("/conversations/{conversation_id}/history", response_model=ConversationHistory)
async def conversation_history(
    conversation_id: str,
    limit: int = Query(50, ge=1, le=500),
    chatbot: ChatbotService = Depends(get_chatbot),
) -> ConversationHistory:
    messages = await chatbot.history(conversation_id, limit)
    return ConversationHistory(
        conversation_id=conversation_id, messages=messages, total=len(messages)
    )


@router.get(
    "/conversations/{conversation_id}/export",
    response_model=ConversationExport,
    responses=NOT_FOUND_RESPONSES,
)
async def export_conversation(
    conversation_id: str, chatbot: ChatbotService = Depends(get_chatbot)
):
    export = await chatbot.export(conversation_id)
    if export is None:
        return error_response(404, *_NOT_FOUND)
    return export


@router.get(
    "/conversations/{conversation_id}/summary",
    response_model=ConversationSummary,
    responses=NOT_FOUND_RESPONSES,
)
async def conversation_summary(
    conversation_id: str, chatbot: ChatbotService = Depends(get_chatbot)
):
    summary = await chatbot.summary(conversation_id)
    if summary is None:
        return error_response(404, *_NOT_FOUND)
    return summary


@router.delete(
    "/conversations/{conversation_id}",
    response_model=ConversationDeleted,
    responses=NOT_FOUND_RESPONSES,
)
async def delete_conversation(
    conversation_id: str, chatbot: ChatbotService = Depends(get_chatbot)
):
    deleted = await chatbot.delete_conversation(conversation_id)
    if not deleted:
        return error_response(404, *_NOT_FOUND)
    return ConversationDeleted(conversation_id=conversation_id, deleted=deleted)


@router.put(
    "/conversations/{conversation_id}/preferences",
    response_model=PreferencesUpdated,
    responses=NOT_FOUND_RESPONSES,
)
async def update_preferences(
    conversation_id: str,
    body: UpdatePreferencesRequest,
    chatbot: ChatbotService = Depends(get_chatbot),
):
    context = await chatbot.update_preferences(conversation_id, body.preferences)
    if context is None:
        return error_response(404, *_NOT_FOUND)
    return PreferencesUpdated(
        conversation_id=conversation_id, preferences=context.user_preferences
    )


@router.get(
    "/participants/{participant_id}/conversations", response_model=ParticipantConversations
)
async def participant_conversations(
    participant_id: str, chatbot: ChatbotService = Depends(get_chatbot)
) -> ParticipantConversations:
    conversations = await chatbot.participant_conversations(participant_id)
    return ParticipantConversations(
        participant_id=participant_id, conversations=conversations, total=len(conversations)
    )


@router.post(
    "/contact-form",
    status_code=201,
    response_model=ChatRecord,
    responses={
        400: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        422: {"model": ErrorResponse},
    },
)
async def submit_contact_form(
    request: Request,
    name: str = Form(...),
    email: str = Form(...),
    message: str = Form(...),
    phone: str | None = Form(None),
    service: str | None = Form(None),
    conversation_id: str | None = Form(None),
    participant_id: str | None = Form(None),
    image: UploadFile | None = File(None),
    chatbot: ChatbotService = Depends(get_chatbot),
    uploads: UploadService = Depends(get_uploads),
):
    """Store a contact form submission, with an optional reference photo."""
    try:
        form = ContactForm(
            name=name,
            email=email,
            message=message,
            phone=phone,
            service=service,
            conversation_id=conversation_id,
            participant_id=participant_id,
        )
    except ValidationError as exc:
        messages = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
        return error_response(422, "validation_error", "; ".join(messages))

    image_url = None
    if image is not None and image.filename:
        try:
            image_url = (await store_upload(uploads, image, "contact-forms")).url
        except UploadRejected as exc:
            return error_response(exc.status, exc.code, exc.message)

    return await chatbot.record_contact_form(
        form,
        image_url=image_url,
        transport_metadata=transport_metadata(request, form_type="contact-form"),
    )


@router.get("/analytics", response_model=ChatAnalytics)
async def chat_analytics(
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    participant_id: str | None = None,
    chatbot: ChatbotService = Depends(get_chatbot),
) -> ChatAnalytics:
    """Message totals, conversation sizes and the most frequent intents."""
    return await chatbot.analytics(
        start=start_date, end=end_date, participant_id=participant_id
    )
