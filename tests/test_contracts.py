"""Tests for the Pydantic contract models.

Validates that models:
- Accept valid data and fill defaults
- Reject invalid data with appropriate errors
- Normalize list fields (dedupe, ordering) and computed fields
"""

import pytest
from pydantic import ValidationError

from interior_api.models.contracts import (
    ChatRecord,
    CollectedData,
    ContactForm,
    ConversationContext,
    ConversationStep,
    Design,
    DesignCreate,
    DesignImage,
    DesignUpdate,
    ErrorResponse,
    Intent,
    SendMessageRequest,
    SocketFrame,
    StartConversationRequest,
    TeamMemberCreate,
    TeamMemberUpdate,
    UpdatePreferencesRequest,
)

MEMBER = {
    "name": "Ana Lopez",
    "position": "Lead Designer",
    "image": "https://cdn.example.com/ana.jpg",
    "description": "Ten years of residential interiors.",
    "experience": "10 years",
    "projects": "120+",
}

DESIGN = {
    "title": "Sunny Kitchen",
    "description": "A bright open kitchen remodel.",
    "category": "kitchen",
    "design_style": "modern",
}


class TestChatbotModels:
    """Conversation state defaults and validation."""

    def test_context_defaults(self):
        """A fresh context starts at the greeting with nothing collected."""
        context = ConversationContext()
        assert context.current_step == ConversationStep.GREETING
        assert context.collected_data == CollectedData()
        assert context.user_preferences == {}

    def test_blank_collected_values_become_none(self):
        """Whitespace-only values count as not collected."""
        assert CollectedData(name="   ").name is None

    def test_intent_confidence_bounds(self):
        """Confidence must lie in [0, 1]."""
        with pytest.raises(ValidationError):
            Intent(kind="greeting", confidence=1.5)

    def test_record_kind_restricted(self):
        """Records are either user or bot."""
        with pytest.raises(ValidationError):
            ChatRecord(id="1", conversation_id="c", participant_id="p", message="m", kind="x")

    def test_context_round_trips_json(self):
        """Contexts survive JSON serialization."""
        context = ConversationContext(
            current_step=ConversationStep.BUDGET,
            collected_data=CollectedData(project_type="residential"),
        )
        assert ConversationContext.model_validate_json(context.model_dump_json()) == context


class TestRequests:
    """Inbound request validation."""

    def test_message_strip_and_length(self):
        """Messages are stripped and must be 1-1000 characters."""
        body = SendMessageRequest(conversation_id=" c ", participant_id="p", message=" hi ")
        assert body.conversation_id == "c"
        assert body.message == "hi"
        with pytest.raises(ValidationError):
            SendMessageRequest(conversation_id="c", participant_id="p", message="   ")
        with pytest.raises(ValidationError):
            SendMessageRequest(conversation_id="c", participant_id="p", message="x" * 1001)

    def test_participant_required(self):
        """Starting a conversation needs a participant id."""
        with pytest.raises(ValidationError):
            StartConversationRequest(participant_id="")

    def test_preferences_not_empty(self):
        """A preferences update must carry at least one entry."""
        with pytest.raises(ValidationError):
            UpdatePreferencesRequest(preferences={})

    def test_contact_form_email(self):
        """Contact forms need a plausible email."""
        form = ContactForm(name="Ana", email="ana@example.com", message="Hello")
        assert form.phone is None
        with pytest.raises(ValidationError):
            ContactForm(name="Ana", email="not-an-email", message="Hello")

    def test_socket_frame_defaults(self):
        """Frames default to an empty data object."""
        assert SocketFrame(event="leave-session").data == {}
        with pytest.raises(ValidationError):
            SocketFrame(event="")


class TestTeamMember:
    """Team member validation."""

    def test_valid_with_defaults(self):
        """Minimal member is active with order 0."""
        member = TeamMemberCreate(**MEMBER)
        assert member.is_active
        assert member.order == 0
        assert member.social.linkedin is None

    def test_expertise_deduped(self):
        """Expertise keeps first-seen order without repeats."""
        member = TeamMemberCreate(**MEMBER, expertise=["Color", "Lighting", "Color"])
        assert member.expertise == ["Color", "Lighting"]

    def test_short_description_rejected(self):
        """Descriptions need at least 10 characters."""
        with pytest.raises(ValidationError):
            TeamMemberCreate(**{**MEMBER, "description": "short"})

    def test_image_must_be_url(self):
        """Images are http(s) URLs or local upload paths."""
        TeamMemberCreate(**{**MEMBER, "image": "/uploads/team/ana.jpg"})
        with pytest.raises(ValidationError):
            TeamMemberCreate(**{**MEMBER, "image": "ana.jpg"})

    def test_negative_order_rejected(self):
        """Order is non-negative."""
        with pytest.raises(ValidationError):
            TeamMemberUpdate(order=-1)

    def test_update_is_partial(self):
        """Unset fields are excluded from a partial update."""
        update = TeamMemberUpdate(position="Principal")
        assert update.model_dump(exclude_unset=True) == {"position": "Principal"}


class TestDesign:
    """Design validation and computed fields."""

    def test_defaults(self):
        """New designs are public drafts."""
        design = DesignCreate(**DESIGN)
        assert design.status == "draft"
        assert design.is_public
        assert not design.is_featured

    def test_unknown_category_rejected(self):
        """Category must be one of the known values."""
        with pytest.raises(ValidationError):
            DesignCreate(**{**DESIGN, "category": "garage"})

    def test_tags_deduped(self):
        """Tags are trimmed and deduplicated."""
        design = DesignCreate(**DESIGN, tags=["bright", " bright ", "open"])
        assert design.tags == ["bright", "open"]

    def test_image_order_defaults_to_position(self):
        """Images without an order take their list position."""
        design = DesignCreate(
            **DESIGN,
            images=[
                {"url": "https://x.com/a.jpg"},
                {"url": "https://x.com/b.jpg", "order": 7},
                {"url": "https://x.com/c.jpg"},
            ],
        )
        assert [image.order for image in design.images] == [0, 7, 2]

    def test_main_image_prefers_order_zero(self):
        """The main image is the one ordered first."""
        design = Design(
            id="d1",
            **DESIGN,
            images=[
                DesignImage(url="https://x.com/a.jpg", order=3),
                DesignImage(url="https://x.com/b.jpg", order=0),
            ],
        )
        assert design.main_image == "https://x.com/b.jpg"

    def test_main_image_none_without_images(self):
        """No images means no main image."""
        design = Design(id="d1", **DESIGN)
        assert design.main_image is None
        assert design.before_after_count == 0

    def test_computed_fields_serialized(self):
        """Computed fields appear in the JSON output."""
        dumped = Design(id="d1", **DESIGN).model_dump()
        assert "main_image" in dumped
        assert "before_after_count" in dumped

    def test_update_rejects_short_title(self):
        """Partial updates still validate their fields."""
        with pytest.raises(ValidationError):
            DesignUpdate(title="ab")


class TestErrorResponse:
    """ErrorResponse is the standard error envelope."""

    def test_detail_optional(self):
        """Detail defaults to None."""
        err = ErrorResponse(error="design_not_found", message="Design not found", retryable=False)
        assert err.detail is None
