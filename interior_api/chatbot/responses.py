"""Reply generation for each questionnaire step.

Dispatch is keyed on the conversation's current step, never on the intent.
Handlers read the context and return a StepResponse whose ``updates`` hold
the collected-data writes they would like to make; committing them is the
orchestrator's job.
"""

from __future__ import annotations

from collections.abc import Callable

from interior_api.chatbot.reference import (
    BUDGET_BANDS,
    DESIGN_STYLES,
    NEXT_STEPS,
    PROJECT_TYPES,
    ROOM_TYPES,
    TIMELINE_BANDS,
)
from interior_api.models.contracts import (
    CollectedData,
    ConversationContext,
    ConversationStep,
    Intent,
    StepResponse,
)

Step = ConversationStep
Handler = Callable[[Intent, str, ConversationContext], StepResponse]

NOT_SPECIFIED = "not specified"

FALLBACK_MESSAGE = (
    "I'm here to help you with your interior design project! "
    "What type of project are you planning?"
)

_PROJECT_TYPE_REPLIES = {
    "residential": (
        "Great choice! Residential projects are our specialty. Which room are you "
        "looking to design? (living room, bedroom, kitchen, bathroom, etc.)"
    ),
    "commercial": (
        "Excellent! Commercial spaces require special attention to functionality and "
        "branding. What type of commercial space? (office, retail, restaurant, etc.)"
    ),
    "renovation": (
        "Renovations are exciting! Which area are you renovating? "
        "(kitchen, bathroom, entire home, etc.)"
    ),
}

_NOTES_QUESTION = (
    "do you have any specific requirements or additional notes about your project? "
    "(e.g., must-have features, special considerations, etc.)"
)


def _bullets(lines: list[str]) -> str:
    return "\n".join(f"• {line}" for line in lines)


def _stay(message: str, step: Step) -> StepResponse:
    return StepResponse(message=message, next_step=step)


def _greeting(intent: Intent, raw_text: str, context: ConversationContext) -> StepResponse:
    if intent.kind == "greeting":
        message = (
            "Hello! I'm your interior design assistant. I'm here to help you plan your "
            "perfect space! What type of project are you thinking about? "
            "(residential, commercial, or renovation?)"
        )
    else:
        message = (
            "Hi there! I'm excited to help you with your interior design project. "
            "What type of project are you planning?"
        )
    return StepResponse(message=message, next_step=Step.PROJECT_TYPE)


def _project_type(intent: Intent, raw_text: str, context: ConversationContext) -> StepResponse:
    if intent.kind in PROJECT_TYPES:
        return StepResponse(
            message=_PROJECT_TYPE_REPLIES[intent.kind],
            next_step=Step.ROOM_TYPE,
            updates={"project_type": intent.kind},
        )
    return _stay(
        "I'd love to help! What type of project are you planning? You can choose from:\n"
        + _bullets(
            [
                "Residential (homes, apartments)",
                "Commercial (offices, retail spaces)",
                "Renovation (updating existing spaces)",
            ]
        ),
        Step.PROJECT_TYPE,
    )


def _room_type(intent: Intent, raw_text: str, context: ConversationContext) -> StepResponse:
    if intent.kind not in ROOM_TYPES:
        return _stay(
            "Which space would you like to design? You can choose from "
            + ", ".join(ROOM_TYPES[:-1])
            + f", or {ROOM_TYPES[-1]}.",
            Step.ROOM_TYPE,
        )
    styles = _bullets([f"{style.capitalize()}: {desc}" for style, desc in DESIGN_STYLES.items()])
    return StepResponse(
        message=(
            f"Perfect! {intent.kind.capitalize()}s are wonderful spaces to design. "
            "What's your preferred design style? Here are some popular options:\n\n" + styles
        ),
        next_step=Step.DESIGN_STYLE,
        updates={"room_type": intent.kind},
    )


def _design_style(intent: Intent, raw_text: str, context: ConversationContext) -> StepResponse:
    if intent.kind not in DESIGN_STYLES:
        return _stay(
            "I'd love to know your design preference! Which style appeals to you most? "
            "You can choose from " + ", ".join(list(DESIGN_STYLES)[:-1]) + ", or other.",
            Step.DESIGN_STYLE,
        )
    return StepResponse(
        message=(
            f"Beautiful choice! {intent.kind.capitalize()} style is {DESIGN_STYLES[intent.kind]}. "
            "Now, let's talk budget. What's your budget range for this project?\n\n"
            + _bullets(list(BUDGET_BANDS.values()))
        ),
        next_step=Step.BUDGET,
        updates={"design_style": intent.kind},
    )


def _budget(intent: Intent, raw_text: str, context: ConversationContext) -> StepResponse:
    if intent.kind not in BUDGET_BANDS:
        return _stay(
            "Understanding your budget helps us plan the perfect project! What's your budget "
            "range? You can choose from under $10,000, $10,000-$25,000, $25,000-$50,000, "
            "$50,000-$100,000, or over $100,000.",
            Step.BUDGET,
        )
    return StepResponse(
        message=(
            f"Perfect! {BUDGET_BANDS[intent.kind]} is a great budget range. "
            "What's your timeline for this project?\n\n"
            + _bullets(list(TIMELINE_BANDS.values()))
        ),
        next_step=Step.TIMELINE,
        updates={"budget": intent.kind},
    )


def _timeline(intent: Intent, raw_text: str, context: ConversationContext) -> StepResponse:
    if intent.kind not in TIMELINE_BANDS:
        return _stay(
            "Timeline is important for planning! When would you like to complete this "
            "project? You can choose from 1-3 months, 3-6 months, 6-12 months, "
            "or over 12 months.",
            Step.TIMELINE,
        )
    return StepResponse(
        message=(
            f"Great! {TIMELINE_BANDS[intent.kind]} gives us good time to plan. "
            "What's the approximate size of the space? "
            "(e.g., 500 sq ft, small bedroom, large open concept, etc.)"
        ),
        next_step=Step.ROOM_SIZE,
        updates={"timeline": intent.kind},
    )


def _room_size(intent: Intent, raw_text: str, context: ConversationContext) -> StepResponse:
    return StepResponse(
        message=(
            "Thanks! Now I'd love to get your contact information so our team can reach "
            "out with a personalized proposal. What's your name?"
        ),
        next_step=Step.CONTACT_INFO,
        updates={"room_size": raw_text},
    )


def _contact_info(intent: Intent, raw_text: str, context: ConversationContext) -> StepResponse:
    data = context.collected_data
    if intent.kind == "name":
        return StepResponse(
            message="Nice to meet you! What's your email address so we can send you our proposal?",
            next_step=Step.CONTACT_INFO,
            updates={"name": raw_text},
        )
    if intent.kind == "email" and intent.extracted_value:
        return StepResponse(
            message="Perfect! Finally, " + _NOTES_QUESTION,
            next_step=Step.ADDITIONAL_NOTES,
            updates={"email": intent.extracted_value},
        )
    if intent.kind == "phone" and intent.extracted_value:
        updates = {"phone": intent.extracted_value}
        if not data.name:
            return StepResponse(
                message="Thanks for your number! What's your name?",
                next_step=Step.CONTACT_INFO,
                updates=updates,
            )
        if not data.email:
            return StepResponse(
                message="Thanks for your number! What's your email address so we can "
                "send you our proposal?",
                next_step=Step.CONTACT_INFO,
                updates=updates,
            )
        return StepResponse(
            message="Great! " + _NOTES_QUESTION.capitalize(),
            next_step=Step.ADDITIONAL_NOTES,
            updates=updates,
        )
    if data.name and data.email:
        return StepResponse(
            message="Great! " + _NOTES_QUESTION.capitalize(),
            next_step=Step.ADDITIONAL_NOTES,
        )
    return _stay("I'd love to get your contact information! What's your name?", Step.CONTACT_INFO)


def summarize(data: CollectedData) -> str:
    """Render the collected answers as the bulleted completion summary."""

    def _label(table: dict[str, str] | None, value: str | None) -> str:
        if not value:
            return NOT_SPECIFIED
        return table.get(value, value) if table is not None else value

    return _bullets(
        [
            f"Project Type: {_label(None, data.project_type)}",
            f"Room Type: {_label(None, data.room_type)}",
            f"Design Style: {_label(None, data.design_style)}",
            f"Budget: {_label(dict(BUDGET_BANDS), data.budget)}",
            f"Timeline: {_label(dict(TIMELINE_BANDS), data.timeline)}",
            f"Room Size: {_label(None, data.room_size)}",
        ]
    )


def _additional_notes(intent: Intent, raw_text: str, context: ConversationContext) -> StepResponse:
    return StepResponse(
        message=(
            "Perfect! Thank you for sharing your project details with me. "
            "Here's a summary of what we discussed:\n\n"
            + summarize(context.collected_data)
            + "\n\nOur team will review your requirements and get back to you within 24 hours "
            "with a personalized proposal. We're excited to help bring your vision to life!"
        ),
        next_step=Step.COMPLETE,
        is_complete=True,
        next_steps=list(NEXT_STEPS),
        updates={"additional_notes": raw_text},
    )


def _complete(intent: Intent, raw_text: str, context: ConversationContext) -> StepResponse:
    return StepResponse(message=FALLBACK_MESSAGE, next_step=Step.PROJECT_TYPE)


HANDLERS: dict[ConversationStep, Handler] = {
    Step.GREETING: _greeting,
    Step.PROJECT_TYPE: _project_type,
    Step.ROOM_TYPE: _room_type,
    Step.DESIGN_STYLE: _design_style,
    Step.BUDGET: _budget,
    Step.TIMELINE: _timeline,
    Step.ROOM_SIZE: _room_size,
    Step.CONTACT_INFO: _contact_info,
    Step.ADDITIONAL_NOTES: _additional_notes,
    Step.COMPLETE: _complete,
}

# Steps whose answer is free text and recorded regardless of intent confidence.
UNGATED_STEPS: frozenset[ConversationStep] = frozenset({Step.ROOM_SIZE, Step.ADDITIONAL_NOTES})


def generate_response(intent: Intent, raw_text: str, context: ConversationContext) -> StepResponse:
    """Produce the reply and proposed updates for the context's current step."""
    return HANDLERS[context.current_step](intent, raw_text, context)
