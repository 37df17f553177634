"""Conversation orchestrator for the questionnaire chatbot.

Transport-agnostic: the HTTP routes and the WebSocket hub both call
``ChatbotService.exchange`` and deliver the outcome over their own channel.

Each call re-reads the latest context from the store, runs the matcher and
the step handler, commits the proposed field writes through the confidence
gate, and appends a user record and a bot record carrying the same resulting
context. Without ``serialize=True`` two overlapping calls for one
conversation both read the same prior step and the later append wins.
"""

from __future__ import annotations

import asyncio
import contextlib
import uuid
from collections import Counter
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

import structlog

from interior_api.chatbot.matcher import match_intent
from interior_api.chatbot.responses import UNGATED_STEPS, generate_response
from interior_api.models.contracts import (
    ChatAnalytics,
    ChatRecord,
    CollectedData,
    CompletionNotification,
    ContactForm,
    ContactInfo,
    ConversationContext,
    ConversationExport,
    ConversationStep,
    ConversationSummary,
    Intent,
    IntentCount,
    ParticipantConversation,
    ProcessOutcome,
    StepResponse,
    TransportMetadata,
)
from interior_api.storage.conversations import ConversationStore

logger = structlog.get_logger()

COMMIT_THRESHOLD = 0.6

APOLOGY_MESSAGE = (
    "I'm sorry, I'm having trouble processing your message. "
    "Please try again or contact our team directly."
)

WELCOME_MESSAGE = (
    "Hello! I'm your interior design assistant. I'm here to help you plan your perfect "
    "space! What type of project are you thinking about? (residential, commercial, or "
    "renovation?)"
)
DEFAULT_OPENING = "Hello! I'm here to help with your interior design project."

CONTACT_FORM_CONVERSATION = "contact-form"
CONTACT_FORM_RESPONSE = "Contact form submitted successfully"
TOP_INTENTS = 10

# Fields a lead needs before the studio can follow up.
REQUIRED_FIELDS = ("name", "email", "project_type", "room_size", "budget")


class CompletionNotifier(Protocol):
    async def notify_complete(self, notification: CompletionNotification) -> None: ...


def _as_utc(moment: datetime | None) -> datetime | None:
    if moment is None or moment.tzinfo is not None:
        return moment
    return moment.replace(tzinfo=UTC)


def has_required_fields(data: CollectedData) -> bool:
    return all((getattr(data, field) or "").strip() for field in REQUIRED_FIELDS)


@dataclass
class Exchange:
    """Outcome of one inbound message plus the two records persisted for it."""

    outcome: ProcessOutcome
    user_record: ChatRecord
    bot_record: ChatRecord


def advance(
    context: ConversationContext, intent: Intent, raw_text: str
) -> tuple[ConversationContext, StepResponse]:
    """Apply one message to a context and return the new context and reply.

    The input context is not modified. Proposed updates are committed only
    when the intent clears the confidence gate, except on the free-text
    steps, which always record what the visitor typed.
    """
    reply = generate_response(intent, raw_text, context)
    collected = context.collected_data
    if reply.updates and (
        context.current_step in UNGATED_STEPS or intent.confidence > COMMIT_THRESHOLD
    ):
        collected = collected.model_copy(update=reply.updates)
    updated = context.model_copy(
        update={"current_step": reply.next_step, "collected_data": collected},
        deep=True,
    )
    return updated, reply


class ChatbotService:
    def __init__(
        self,
        store: ConversationStore,
        notifier: CompletionNotifier | None = None,
        *,
        serialize: bool = False,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.serialize = serialize
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    @contextlib.asynccontextmanager
    async def _conversation_lock(self, conversation_id: str) -> AsyncIterator[None]:
        if not self.serialize:
            yield
            return
        lock = self._locks.setdefault(conversation_id, asyncio.Lock())
        self._lock_users[conversation_id] = self._lock_users.get(conversation_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            # Drop the lock once nobody holds or awaits it.
            self._lock_users[conversation_id] -= 1
            if not self._lock_users[conversation_id]:
                del self._lock_users[conversation_id]
                del self._locks[conversation_id]

    async def load_context(self, conversation_id: str) -> ConversationContext:
        """Latest context for a conversation, or a fresh one.

        A failing store read is logged and treated as a new conversation so
        the visitor can keep chatting through an outage.
        """
        try:
            context = await self.store.get_latest_context(conversation_id)
        except Exception:
            logger.exception("conversation_store_read_failed", conversation_id=conversation_id)
            return ConversationContext()
        return context if context is not None else ConversationContext()

    async def process_message(
        self,
        message: str,
        conversation_id: str,
        participant_id: str,
        transport_metadata: TransportMetadata | None = None,
    ) -> ProcessOutcome:
        exchange = await self.exchange(message, conversation_id, participant_id, transport_metadata)
        return exchange.outcome

    async def exchange(
        self,
        message: str,
        conversation_id: str,
        participant_id: str,
        transport_metadata: TransportMetadata | None = None,
        *,
        deliver: Callable[[Exchange], Awaitable[None]] | None = None,
    ) -> Exchange:
        """Process one message and return the outcome with its stored records.

        ``deliver`` runs after persistence and before the completion
        notification, so a push transport can send the reply first.
        """
        async with self._conversation_lock(conversation_id):
            return await self._exchange(
                message,
                conversation_id,
                participant_id,
                transport_metadata or TransportMetadata(),
                deliver,
            )

    async def _exchange(
        self,
        message: str,
        conversation_id: str,
        participant_id: str,
        metadata: TransportMetadata,
        deliver: Callable[[Exchange], Awaitable[None]] | None,
    ) -> Exchange:
        prior = await self.load_context(conversation_id)
        try:
            intent = match_intent(message, prior.current_step)
            context, reply = advance(prior, intent, message)
        except Exception:
            logger.exception(
                "chat_message_processing_failed",
                conversation_id=conversation_id,
                step=str(prior.current_step),
            )
            outcome = ProcessOutcome(
                response=APOLOGY_MESSAGE,
                intent_kind="error",
                confidence=0,
                context=None,
                is_complete=False,
            )
            # Keep the stored state where it was.
            snapshot = prior
        else:
            outcome = ProcessOutcome(
                response=reply.message,
                intent_kind=intent.kind,
                confidence=intent.confidence,
                context=context,
                is_complete=reply.is_complete,
                next_steps=reply.next_steps,
            )
            snapshot = context

        user_record = ChatRecord(
            id=str(uuid.uuid4()),
            conversation_id=conversation_id,
            participant_id=participant_id,
            message=message,
            response=outcome.response,
            kind="user",
            intent_kind=outcome.intent_kind,
            confidence=outcome.confidence,
            context=snapshot,
            transport_metadata=metadata,
        )
        bot_record = ChatRecord(
            id=str(uuid.uuid4()),
            conversation_id=conversation_id,
            participant_id=participant_id,
            message=outcome.response,
            response="",
            kind="bot",
            intent_kind=outcome.intent_kind,
            confidence=outcome.confidence,
            context=snapshot,
            transport_metadata=metadata,
        )
        await self._persist(user_record, bot_record)

        logger.info(
            "chat_message_processed",
            conversation_id=conversation_id,
            from_step=str(prior.current_step),
            to_step=str(snapshot.current_step),
            intent=outcome.intent_kind,
            confidence=outcome.confidence,
            is_complete=outcome.is_complete,
        )

        result = Exchange(outcome=outcome, user_record=user_record, bot_record=bot_record)
        if deliver is not None:
            try:
                await deliver(result)
            except Exception:
                logger.exception("exchange_delivery_failed", conversation_id=conversation_id)

        if outcome.is_complete and outcome.context is not None:
            await self._notify(
                CompletionNotification(
                    conversation_id=conversation_id,
                    collected_data=outcome.context.collected_data,
                    next_steps=outcome.next_steps,
                )
            )
        return result

    async def _persist(self, *records: ChatRecord) -> None:
        for record in records:
            try:
                await self.store.append_record(record)
            except Exception:
                logger.exception(
                    "conversation_store_write_failed",
                    conversation_id=record.conversation_id,
                    kind=record.kind,
                )

    async def _notify(self, notification: CompletionNotification) -> None:
        if self.notifier is None:
            return
        try:
            await self.notifier.notify_complete(notification)
        except Exception:
            logger.exception(
                "completion_notify_failed", conversation_id=notification.conversation_id
            )

    async def start_conversation(
        self,
        participant_id: str,
        initial_message: str | None = None,
        transport_metadata: TransportMetadata | None = None,
    ) -> ChatRecord:
        """Create a conversation id and store its greeting record.

        The stored context stays on the greeting step so the visitor's first
        reply is handled as the greeting answer.
        """
        record = ChatRecord(
            id=str(uuid.uuid4()),
            conversation_id=f"conv_{uuid.uuid4().hex}",
            participant_id=participant_id,
            message=initial_message or DEFAULT_OPENING,
            response=WELCOME_MESSAGE,
            kind="bot",
            intent_kind="greeting",
            confidence=1,
            context=ConversationContext(current_step=ConversationStep.GREETING),
            transport_metadata=transport_metadata or TransportMetadata(),
        )
        await self.store.append_record(record)
        logger.info(
            "conversation_started",
            conversation_id=record.conversation_id,
            participant_id=participant_id,
        )
        return record

    async def update_preferences(
        self, conversation_id: str, preferences: dict[str, str]
    ) -> ConversationContext | None:
        """Merge preferences into the latest context. None if the conversation is unknown."""
        context = await self.store.get_latest_context(conversation_id)
        if context is None:
            return None
        merged = context.model_copy(
            update={"user_preferences": {**context.user_preferences, **preferences}}
        )
        await self.store.replace_latest_context(conversation_id, merged)
        logger.info(
            "conversation_preferences_updated",
            conversation_id=conversation_id,
            keys=sorted(preferences),
        )
        return merged

    async def history(self, conversation_id: str, limit: int = 50) -> list[ChatRecord]:
        """Latest ``limit`` records, oldest first."""
        return await self.store.list_records(conversation_id, limit)

    async def participant_conversations(self, participant_id: str) -> list[ParticipantConversation]:
        return await self.store.list_participant_conversations(participant_id)

    async def export(self, conversation_id: str) -> ConversationExport | None:
        records = await self.store.list_records(conversation_id)
        if not records:
            return None
        final = records[-1].context
        return ConversationExport(
            conversation_id=conversation_id,
            participant_id=records[0].participant_id,
            current_step=final.current_step,
            collected_data=final.collected_data,
            user_preferences=final.user_preferences,
            messages=records,
        )

    async def summary(self, conversation_id: str) -> ConversationSummary | None:
        records = await self.store.list_records(conversation_id)
        if not records:
            return None
        last = records[-1]
        data = last.context.collected_data
        return ConversationSummary(
            conversation_id=conversation_id,
            participant_id=last.participant_id,
            last_activity=last.created_at,
            message_count=len(records),
            current_step=last.context.current_step,
            is_complete=has_required_fields(data),
            collected_data=data,
            user_preferences=last.context.user_preferences,
            contact_info=ContactInfo(name=data.name, email=data.email, phone=data.phone),
        )

    async def delete_conversation(self, conversation_id: str) -> int:
        deleted = await self.store.delete_conversation(conversation_id)
        if deleted:
            logger.info("conversation_deleted", conversation_id=conversation_id, records=deleted)
        return deleted

    async def record_contact_form(
        self,
        form: ContactForm,
        *,
        image_url: str | None = None,
        transport_metadata: TransportMetadata | None = None,
    ) -> ChatRecord:
        """Store a website contact form submission as a user chat record.

        When the form names a conversation that already has records, the
        contact details are merged into its latest context so the step and
        earlier answers carry over.
        """
        preferences = {"service": form.service or ""}
        if image_url:
            preferences["image_url"] = image_url
        contact = {"name": form.name, "email": form.email}
        if form.phone:
            contact["phone"] = form.phone
        existing = None
        if form.conversation_id:
            existing = await self.store.get_latest_context(form.conversation_id)
        if existing is None:
            context = ConversationContext(
                collected_data=CollectedData(**contact), user_preferences=preferences
            )
        else:
            context = existing.model_copy(
                update={
                    "collected_data": existing.collected_data.model_copy(update=contact),
                    "user_preferences": {**existing.user_preferences, **preferences},
                },
                deep=True,
            )
        record = ChatRecord(
            id=str(uuid.uuid4()),
            conversation_id=form.conversation_id or CONTACT_FORM_CONVERSATION,
            participant_id=form.participant_id or form.email,
            message=form.message,
            response=CONTACT_FORM_RESPONSE,
            kind="user",
            context=context,
            transport_metadata=transport_metadata or TransportMetadata(form_type="contact-form"),
        )
        await self.store.append_record(record)
        logger.info(
            "contact_form_recorded",
            conversation_id=record.conversation_id,
            has_image=image_url is not None,
        )
        return record

    async def analytics(
        self,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        participant_id: str | None = None,
    ) -> ChatAnalytics:
        records = await self.store.query_records(
            start=_as_utc(start), end=_as_utc(end), participant_id=participant_id
        )
        if not records:
            return ChatAnalytics()
        per_conversation = Counter(record.conversation_id for record in records)
        sizes = list(per_conversation.values())
        intents = Counter(record.intent_kind for record in records if record.intent_kind)
        return ChatAnalytics(
            total_messages=len(records),
            message_counts=dict(Counter(record.kind for record in records)),
            unique_conversations=len(per_conversation),
            unique_participants=len({record.participant_id for record in records}),
            avg_messages_per_conversation=round(sum(sizes) / len(sizes), 2),
            max_messages_per_conversation=max(sizes),
            min_messages_per_conversation=min(sizes),
            top_intents=[
                IntentCount(intent=intent, count=count)
                for intent, count in intents.most_common(TOP_INTENTS)
            ],
        )
