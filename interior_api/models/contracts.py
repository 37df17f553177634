"""Contract models shared by the API routes, services and stores.

Chatbot state, team and portfolio documents, upload results and the error
envelope all live here so every layer agrees on one JSON shape.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


def _now() -> datetime:
    return datetime.now(UTC)


def _dedupe(items: list[str]) -> list[str]:
    """Drop repeats and blanks while keeping first-seen order."""
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        item = item.strip()
        if item and item not in seen:
            seen.add(item)
            out.append(item)
    return out


# === Chatbot ===


class ConversationStep(StrEnum):
    GREETING = "greeting"
    PROJECT_TYPE = "project_type"
    ROOM_TYPE = "room_type"
    DESIGN_STYLE = "design_style"
    BUDGET = "budget"
    TIMELINE = "timeline"
    ROOM_SIZE = "room_size"
    CONTACT_INFO = "contact_info"
    ADDITIONAL_NOTES = "additional_notes"
    COMPLETE = "complete"


class Intent(BaseModel):
    """Classified meaning of one inbound message, scoped to its step."""

    kind: str
    confidence: float = Field(ge=0, le=1)
    extracted_value: str | None = None


class CollectedData(BaseModel):
    project_type: str | None = None
    room_type: str | None = None
    design_style: str | None = None
    budget: str | None = None
    timeline: str | None = None
    room_size: str | None = None
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    additional_notes: str | None = None

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class ConversationContext(BaseModel):
    current_step: ConversationStep = ConversationStep.GREETING
    collected_data: CollectedData = Field(default_factory=CollectedData)
    user_preferences: dict[str, str] = {}


class TransportMetadata(BaseModel):
    """Where a message came from; supplied by the transport, stored verbatim."""

    origin: str | None = None
    remote_address: str | None = None
    user_agent: str | None = None
    form_type: str | None = None


class ChatRecord(BaseModel):
    """One persisted chat message (either side of an exchange)."""

    id: str
    conversation_id: str
    participant_id: str
    message: str
    response: str | None = None
    kind: Literal["user", "bot"]
    intent_kind: str | None = None
    confidence: float | None = Field(default=None, ge=0, le=1)
    context: ConversationContext = Field(default_factory=ConversationContext)
    transport_metadata: TransportMetadata = Field(default_factory=TransportMetadata)
    is_resolved: bool = False
    created_at: datetime = Field(default_factory=_now)


class StepResponse(BaseModel):
    """Reply produced for one step. `updates` are proposed, not yet committed."""

    message: str
    next_step: ConversationStep
    is_complete: bool = False
    next_steps: list[str] = []
    updates: dict[str, str] = {}


class ProcessOutcome(BaseModel):
    response: str
    intent_kind: str
    confidence: float
    context: ConversationContext | None
    is_complete: bool = False
    next_steps: list[str] = []


class CompletionNotification(BaseModel):
    conversation_id: str
    collected_data: CollectedData
    next_steps: list[str]


class StartConversationRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    participant_id: str = Field(min_length=1, max_length=100)
    initial_message: str | None = Field(default=None, max_length=1000)


class SendMessageRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    conversation_id: str = Field(min_length=1, max_length=100)
    participant_id: str = Field(min_length=1, max_length=100)
    message: str = Field(min_length=1, max_length=1000)
    metadata: dict[str, str] | None = None


class ChatExchange(BaseModel):
    user_message: ChatRecord
    bot_message: ChatRecord
    is_complete: bool = False
    next_steps: list[str] = []


class ConversationHistory(BaseModel):
    conversation_id: str
    messages: list[ChatRecord]
    total: int


class ConversationExport(BaseModel):
    conversation_id: str
    participant_id: str
    exported_at: datetime = Field(default_factory=_now)
    current_step: ConversationStep
    collected_data: CollectedData
    user_preferences: dict[str, str] = {}
    messages: list[ChatRecord]


class ContactInfo(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None


class ConversationSummary(BaseModel):
    conversation_id: str
    participant_id: str
    last_activity: datetime
    message_count: int
    current_step: ConversationStep
    is_complete: bool
    collected_data: CollectedData
    user_preferences: dict[str, str] = {}
    contact_info: ContactInfo


class ParticipantConversation(BaseModel):
    conversation_id: str
    last_message: str
    last_activity: datetime
    message_count: int


class ParticipantConversations(BaseModel):
    participant_id: str
    conversations: list[ParticipantConversation]
    total: int


class ConversationDeleted(BaseModel):
    conversation_id: str
    deleted: int


class UpdatePreferencesRequest(BaseModel):
    preferences: dict[str, str] = Field(min_length=1)


class PreferencesUpdated(BaseModel):
    conversation_id: str
    preferences: dict[str, str]


class ContactForm(BaseModel):
    """Website contact form; arrives as multipart fields."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=1, max_length=100)
    email: str = Field(pattern=r"^[^\s@]+@[^\s@]+\.[^\s@]+$", max_length=254)
    message: str = Field(min_length=1, max_length=1000)
    phone: str | None = Field(default=None, max_length=40)
    service: str | None = Field(default=None, max_length=100)
    conversation_id: str | None = Field(default=None, max_length=100)
    participant_id: str | None = Field(default=None, max_length=100)


class IntentCount(BaseModel):
    intent: str
    count: int


class ChatAnalytics(BaseModel):
    total_messages: int = 0
    message_counts: dict[str, int] = {}
    unique_conversations: int = 0
    unique_participants: int = 0
    avg_messages_per_conversation: float = 0.0
    max_messages_per_conversation: int = 0
    min_messages_per_conversation: int = 0
    top_intents: list[IntentCount] = []


# === Team ===

ExpertiseItem = Annotated[str, Field(min_length=2, max_length=50)]

_IMAGE_URL_PATTERN = r"^(https?://|/uploads/)\S+$"


class SocialLinks(BaseModel):
    linkedin: str | None = None
    instagram: str | None = None
    pinterest: str | None = None


class TeamMemberCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(min_length=2, max_length=100)
    position: str = Field(min_length=2, max_length=100)
    image: str = Field(pattern=_IMAGE_URL_PATTERN)
    description: str = Field(min_length=10, max_length=500)
    experience: str = Field(min_length=1, max_length=100)
    projects: str = Field(min_length=1, max_length=100)
    expertise: list[ExpertiseItem] = []
    social: SocialLinks = Field(default_factory=SocialLinks)
    is_active: bool = True
    order: int = Field(default=0, ge=0)

    @field_validator("expertise")
    @classmethod
    def _unique_expertise(cls, value: list[str]) -> list[str]:
        return _dedupe(value)


class TeamMemberUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str | None = Field(default=None, min_length=2, max_length=100)
    position: str | None = Field(default=None, min_length=2, max_length=100)
    image: str | None = Field(default=None, pattern=_IMAGE_URL_PATTERN)
    description: str | None = Field(default=None, min_length=10, max_length=500)
    experience: str | None = Field(default=None, min_length=1, max_length=100)
    projects: str | None = Field(default=None, min_length=1, max_length=100)
    expertise: list[ExpertiseItem] | None = None
    social: SocialLinks | None = None
    is_active: bool | None = None
    order: int | None = Field(default=None, ge=0)

    @field_validator("expertise")
    @classmethod
    def _unique_expertise(cls, value: list[str] | None) -> list[str] | None:
        return None if value is None else _dedupe(value)


class TeamMember(TeamMemberCreate):
    id: str
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class TeamMemberSummary(BaseModel):
    id: str
    name: str
    position: str
    image: str


class OrderUpdate(BaseModel):
    order: int = Field(ge=0)


class Pagination(BaseModel):
    current: int
    total: int
    has_next: bool
    has_prev: bool
    total_items: int


class TeamListResponse(BaseModel):
    team_members: list[TeamMember]
    pagination: Pagination


# === Portfolio ===

DesignCategory = Literal[
    "residential",
    "commercial",
    "kitchen",
    "bathroom",
    "living-room",
    "bedroom",
    "office",
    "outdoor",
    "other",
]
DesignStyle = Literal[
    "modern",
    "traditional",
    "contemporary",
    "minimalist",
    "industrial",
    "scandinavian",
    "bohemian",
    "coastal",
    "farmhouse",
    "mid-century",
    "art-deco",
    "other",
]
DesignStatus = Literal["draft", "in-progress", "completed", "archived"]
DesignSortField = Literal["created_at", "updated_at", "title", "views", "likes"]


class DesignImage(BaseModel):
    url: str = Field(pattern=_IMAGE_URL_PATTERN)
    caption: str | None = Field(default=None, max_length=200)
    is_before: bool = False
    is_after: bool = False
    order: int | None = Field(default=None, ge=0)


class BeforeAfterPair(BaseModel):
    before_image: str = Field(pattern=_IMAGE_URL_PATTERN)
    after_image: str = Field(pattern=_IMAGE_URL_PATTERN)
    caption: str | None = Field(default=None, max_length=200)


class ProjectDetails(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    client_name: str | None = Field(default=None, max_length=100)
    project_size: str | None = None
    budget: str | None = None
    timeline: str | None = None
    location: str | None = None


class DesignMetadata(BaseModel):
    colors: list[str] = []
    materials: list[str] = []
    furniture: list[str] = []
    lighting: list[str] = []


TagItem = Annotated[str, Field(max_length=50)]


def _order_images(images: list[DesignImage]) -> list[DesignImage]:
    return [
        image if image.order is not None else image.model_copy(update={"order": index})
        for index, image in enumerate(images)
    ]


class DesignCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(min_length=3, max_length=200)
    description: str = Field(min_length=10, max_length=1000)
    category: DesignCategory
    design_style: DesignStyle
    images: list[DesignImage] = []
    before_after_images: list[BeforeAfterPair] = []
    project_details: ProjectDetails = Field(default_factory=ProjectDetails)
    tags: list[TagItem] = []
    team_member_id: str | None = None
    status: DesignStatus = "draft"
    is_featured: bool = False
    is_public: bool = True
    metadata: DesignMetadata = Field(default_factory=DesignMetadata)

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, value: list[str]) -> list[str]:
        return _dedupe(value)

    @field_validator("images")
    @classmethod
    def _default_image_order(cls, value: list[DesignImage]) -> list[DesignImage]:
        return _order_images(value)


class DesignUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(default=None, min_length=3, max_length=200)
    description: str | None = Field(default=None, min_length=10, max_length=1000)
    category: DesignCategory | None = None
    design_style: DesignStyle | None = None
    images: list[DesignImage] | None = None
    before_after_images: list[BeforeAfterPair] | None = None
    project_details: ProjectDetails | None = None
    tags: list[TagItem] | None = None
    team_member_id: str | None = None
    status: DesignStatus | None = None
    is_featured: bool | None = None
    is_public: bool | None = None
    metadata: DesignMetadata | None = None

    @field_validator("tags")
    @classmethod
    def _unique_tags(cls, value: list[str] | None) -> list[str] | None:
        return None if value is None else _dedupe(value)

    @field_validator("images")
    @classmethod
    def _default_image_order(cls, value: list[DesignImage] | None) -> list[DesignImage] | None:
        return None if value is None else _order_images(value)


class Design(DesignCreate):
    id: str
    views: int = Field(default=0, ge=0)
    likes: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def main_image(self) -> str | None:
        """URL of the image ordered first, else the first image."""
        if not self.images:
            return None
        for image in self.images:
            if image.order == 0:
                return image.url
        return self.images[0].url

    @computed_field  # type: ignore[prop-decorator]
    @property
    def before_after_count(self) -> int:
        return len(self.before_after_images)


class DesignDetail(Design):
    team_member: TeamMemberSummary | None = None


class DesignListResponse(BaseModel):
    designs: list[DesignDetail]
    pagination: Pagination


class DesignCollection(BaseModel):
    """Unpaginated result of the featured, category and search listings."""

    designs: list[DesignDetail]
    total: int
    category: str | None = None
    query: str | None = None


class LikeResponse(BaseModel):
    id: str
    likes: int


class NamedCount(BaseModel):
    name: str
    count: int


class DesignStats(BaseModel):
    total_designs: int
    public_designs: int
    featured_designs: int
    total_views: int
    total_likes: int
    by_category: list[NamedCount]
    by_style: list[NamedCount]


# === Uploads ===


class UploadedImage(BaseModel):
    public_id: str  # storage key; also the handle for deletion
    url: str
    original_name: str
    size: int
    content_type: str
    width: int
    height: int


class UploadBatch(BaseModel):
    files: list[UploadedImage]
    total: int
    folder: str | None = None


class BeforeAfterUpload(BaseModel):
    before_image: str
    after_image: str
    caption: str = ""
    before_public_id: str
    after_public_id: str


class UploadStats(BaseModel):
    backend: Literal["r2", "local"]
    total_images: int
    total_bytes: int
    max_file_bytes: int


# === Realtime ===


class SocketFrame(BaseModel):
    """One WebSocket message in either direction."""

    event: str = Field(min_length=1, max_length=50)
    data: dict[str, Any] = {}


# === Errors ===


class ErrorResponse(BaseModel):
    error: str
    message: str
    retryable: bool
    detail: str | None = None
