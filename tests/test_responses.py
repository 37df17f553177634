"""Tests for the step response generator."""

import pytest

from interior_api.chatbot.reference import NEXT_STEPS
from interior_api.chatbot.responses import (
    FALLBACK_MESSAGE,
    HANDLERS,
    NOT_SPECIFIED,
    generate_response,
    summarize,
)
from interior_api.models.contracts import CollectedData, ConversationContext, Intent
from interior_api.models.contracts import ConversationStep as Step

UNKNOWN = Intent(kind="unknown", confidence=0.3)


def _context(step: Step, **data) -> ConversationContext:
    return ConversationContext(current_step=step, collected_data=CollectedData(**data))


class TestDispatchTable:
    def test_every_step_has_a_handler(self):
        """Each conversation step is covered by the dispatch table."""
        assert set(HANDLERS) == set(Step)


class TestUnknownNeverAdvancesGatedSteps:
    @pytest.mark.parametrize(
        "step",
        [Step.PROJECT_TYPE, Step.ROOM_TYPE, Step.DESIGN_STYLE, Step.BUDGET, Step.TIMELINE],
    )
    def test_reprompts_in_place(self, step):
        """Unknown input keeps the step and proposes no writes."""
        reply = generate_response(UNKNOWN, "whatever", _context(step))
        assert reply.next_step == step
        assert reply.updates == {}
        assert not reply.is_complete

    def test_contact_info_reprompts_without_name_and_email(self):
        """Contact info stays put until a name and email exist."""
        reply = generate_response(UNKNOWN, "John", _context(Step.CONTACT_INFO))
        assert reply.next_step == Step.CONTACT_INFO
        assert reply.updates == {}
        assert "What's your name?" in reply.message

    def test_room_type_reprompt_lists_rooms(self):
        """The room re-prompt names the choices."""
        reply = generate_response(UNKNOWN, "garage", _context(Step.ROOM_TYPE))
        assert "living room" in reply.message
        assert "or outdoor." in reply.message


class TestAdvancing:
    def test_greeting_always_advances(self):
        """The greeting step moves to project type even for unknown input."""
        reply = generate_response(UNKNOWN, "yo", _context(Step.GREETING))
        assert reply.next_step == Step.PROJECT_TYPE
        assert reply.updates == {}

    def test_greeting_text_differs_by_intent(self):
        """A recognised greeting gets the full welcome."""
        greeted = generate_response(
            Intent(kind="greeting", confidence=0.9), "hi", _context(Step.GREETING)
        )
        other = generate_response(UNKNOWN, "yo", _context(Step.GREETING))
        assert greeted.message != other.message
        assert "residential, commercial, or renovation" in greeted.message

    def test_project_type(self):
        """A recognised project type advances and proposes the field."""
        reply = generate_response(
            Intent(kind="commercial", confidence=0.8), "office", _context(Step.PROJECT_TYPE)
        )
        assert reply.next_step == Step.ROOM_TYPE
        assert reply.updates == {"project_type": "commercial"}
        assert "Commercial spaces" in reply.message

    def test_reprompt_text_differs_from_advancing_text(self):
        """Re-prompt and advance replies are distinguishable."""
        context = _context(Step.BUDGET)
        stay = generate_response(UNKNOWN, "?", context)
        move = generate_response(Intent(kind="10k-25k", confidence=0.8), "10k-25k", context)
        assert stay.message != move.message

    def test_design_style_description(self):
        """The style reply quotes the style description."""
        reply = generate_response(
            Intent(kind="modern", confidence=0.8), "modern", _context(Step.DESIGN_STYLE)
        )
        assert "Clean lines, minimal decoration, and a focus on function" in reply.message
        assert reply.updates == {"design_style": "modern"}
        assert reply.next_step == Step.BUDGET

    def test_budget_reply_uses_label(self):
        """The budget reply shows the band label."""
        reply = generate_response(
            Intent(kind="50k-100k", confidence=0.7), "60000", _context(Step.BUDGET)
        )
        assert "$50,000 - $100,000" in reply.message
        assert reply.next_step == Step.TIMELINE

    def test_timeline(self):
        """A timeline band advances to room size."""
        reply = generate_response(
            Intent(kind="6-12-months", confidence=0.8), "6-12 months", _context(Step.TIMELINE)
        )
        assert reply.next_step == Step.ROOM_SIZE
        assert reply.updates == {"timeline": "6-12-months"}

    def test_room_size_records_raw_text(self):
        """Room size stores exactly what was typed."""
        reply = generate_response(UNKNOWN, "about 200 sq ft", _context(Step.ROOM_SIZE))
        assert reply.updates == {"room_size": "about 200 sq ft"}
        assert reply.next_step == Step.CONTACT_INFO


class TestContactInfo:
    def test_name_stays_and_asks_for_email(self):
        """A name is recorded and the email is requested next."""
        reply = generate_response(
            Intent(kind="name", confidence=0.7), "my name is Ana", _context(Step.CONTACT_INFO)
        )
        assert reply.next_step == Step.CONTACT_INFO
        assert reply.updates == {"name": "my name is Ana"}
        assert "email" in reply.message

    def test_email_advances(self):
        """An email moves on to additional notes."""
        reply = generate_response(
            Intent(kind="email", confidence=0.9, extracted_value="a@b.co"),
            "a@b.co",
            _context(Step.CONTACT_INFO),
        )
        assert reply.next_step == Step.ADDITIONAL_NOTES
        assert reply.updates == {"email": "a@b.co"}

    def test_phone_asks_for_missing_name(self):
        """A phone number without a name asks for the name."""
        reply = generate_response(
            Intent(kind="phone", confidence=0.9, extracted_value="555-123-4567"),
            "555-123-4567",
            _context(Step.CONTACT_INFO),
        )
        assert reply.next_step == Step.CONTACT_INFO
        assert reply.updates == {"phone": "555-123-4567"}
        assert "name" in reply.message

    def test_phone_with_name_and_email_advances(self):
        """Once name and email are known a phone number finishes contact info."""
        reply = generate_response(
            Intent(kind="phone", confidence=0.9, extracted_value="555-123-4567"),
            "555-123-4567",
            _context(Step.CONTACT_INFO, name="Ana", email="a@b.co"),
        )
        assert reply.next_step == Step.ADDITIONAL_NOTES

    def test_unknown_with_name_and_email_advances(self):
        """Unknown input advances when the contact fields are already filled."""
        reply = generate_response(
            UNKNOWN, "ok", _context(Step.CONTACT_INFO, name="Ana", email="a@b.co")
        )
        assert reply.next_step == Step.ADDITIONAL_NOTES
        assert reply.updates == {}


class TestCompletion:
    def test_additional_notes_completes(self):
        """Notes finish the conversation with the summary and next steps."""
        context = _context(
            Step.ADDITIONAL_NOTES, project_type="residential", budget="10k-25k"
        )
        reply = generate_response(UNKNOWN, "south facing", context)
        assert reply.is_complete
        assert reply.next_step == Step.COMPLETE
        assert reply.next_steps == list(NEXT_STEPS)
        assert reply.updates == {"additional_notes": "south facing"}
        assert "Project Type: residential" in reply.message
        assert "Budget: $10,000 - $25,000" in reply.message

    def test_complete_restarts_at_project_type(self):
        """A message after completion falls back to the project type question."""
        reply = generate_response(UNKNOWN, "thanks", _context(Step.COMPLETE))
        assert reply.message == FALLBACK_MESSAGE
        assert reply.next_step == Step.PROJECT_TYPE
        assert not reply.is_complete


class TestSummarize:
    def test_missing_fields(self):
        """Fields never collected render as 'not specified'."""
        text = summarize(CollectedData(timeline="3-6-months"))
        assert "Timeline: 3-6 months" in text
        assert f"Room Size: {NOT_SPECIFIED}" in text
        assert text.count(NOT_SPECIFIED) == 5
