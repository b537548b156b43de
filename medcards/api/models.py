"""
Pydantic models used for request/response validation and API data contracts.

Each class defines the structure of data expected in API endpoints, ensuring
validation and automatic OpenAPI schema generation. Wire names are camelCase
(`aiGenerated`, `createdAt`...) while snake_case is accepted on input too.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator
from pydantic.alias_generators import to_camel

from medcards.localized import LocalizedText, to_localized_text, to_wire


class WireModel(BaseModel):
    """Base model: camelCase aliases, snake_case accepted, unknown keys ignored."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class UserCredentials(WireModel):
    """
    Login credentials. Both fields are optional at the schema level so that
    missing values produce the API's own 400 message.
    """
    email: Optional[str] = None
    password: Optional[str] = None


class UserData(UserCredentials):
    """Data required to register a new user."""
    name: Optional[str] = None


class UserOut(WireModel):
    id: str
    email: str
    name: Optional[str] = None
    created_at: Optional[datetime] = None


class AuthResponse(WireModel):
    """Returned by register and login."""
    user: UserOut
    token: str


class MeResponse(WireModel):
    user: UserOut


class MessageResponse(WireModel):
    message: str


# ---------------------------------------------------------------------------
# Medical cards
# ---------------------------------------------------------------------------

Urgency = Literal["standard", "high", "urgent"]


class Reference(WireModel):
    """A bibliographic or web reference attached to a card."""
    name: str
    type: Optional[str] = None
    url: Optional[str] = None


def _merge_single_section(data: Any) -> Any:
    """Accept the legacy single `section` key as a one-element `sections` list."""
    if isinstance(data, dict) and data.get("section") and not data.get("sections"):
        data = dict(data)
        data["sections"] = [data.pop("section")]
    return data


class MedicalCardCreate(WireModel):
    """Body of `POST /api/medical-cards`. Ownership always comes from the token."""
    title: LocalizedText
    content: LocalizedText = Field(default_factory=lambda: to_localized_text(""))
    specialty: Optional[str] = None
    sections: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    urgency: Urgency = "standard"
    references: List[Reference] = Field(default_factory=list)
    ai_generated: bool = False
    ai_sources: List[str] = Field(default_factory=list)
    is_public: bool = False
    color: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _merge_section(cls, data):
        return _merge_single_section(data)

    @field_validator("title", "content", mode="before")
    @classmethod
    def _normalize_text(cls, value):
        return to_localized_text(value)


class MedicalCardUpdate(WireModel):
    """Body of `PUT /api/medical-cards/{id}`; only provided fields change."""
    title: Optional[LocalizedText] = None
    content: Optional[LocalizedText] = None
    specialty: Optional[str] = None
    sections: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    urgency: Optional[Urgency] = None
    references: Optional[List[Reference]] = None
    ai_generated: Optional[bool] = None
    ai_sources: Optional[List[str]] = None
    is_public: Optional[bool] = None
    color: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _merge_section(cls, data):
        return _merge_single_section(data)

    @field_validator("title", "content", mode="before")
    @classmethod
    def _normalize_text(cls, value):
        return None if value is None else to_localized_text(value)


class MedicalCardOut(WireModel):
    id: str
    user_id: str
    title: LocalizedText
    content: LocalizedText
    specialty: Optional[str] = None
    sections: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    urgency: str = "standard"
    references: List[Reference] = Field(default_factory=list)
    ai_generated: bool = False
    ai_sources: List[str] = Field(default_factory=list)
    is_public: bool = False
    color: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("title", "content", mode="before")
    @classmethod
    def _normalize_text(cls, value):
        return to_localized_text(value)

    @field_serializer("title", "content")
    def _serialize_text(self, value: LocalizedText):
        return to_wire(value)


# ---------------------------------------------------------------------------
# Templates, entries, categories, links
# ---------------------------------------------------------------------------

class TemplateIn(WireModel):
    name: str
    description: Optional[str] = None
    layout: List[Dict[str, Any]] = Field(default_factory=list)


class TemplateOut(TemplateIn):
    id: str
    created_at: Optional[datetime] = None


class EntryIn(WireModel):
    template_id: str
    data: Dict[str, Any] = Field(default_factory=dict)


class EntryOut(EntryIn):
    id: str
    created_at: Optional[datetime] = None


class CategoryIn(WireModel):
    name: str
    description: Optional[str] = None
    specialty: Optional[str] = None


class CategoryOut(CategoryIn):
    id: str


class LinkIn(WireModel):
    name: str
    url: str
    category_id: Optional[str] = None
    specialty: Optional[str] = None


class LinkOut(LinkIn):
    id: str


# ---------------------------------------------------------------------------
# AI proxy & generation
# ---------------------------------------------------------------------------

class ChatMessage(WireModel):
    role: str
    content: str


class ChatRequest(BaseModel):
    """
    Body of `POST /api/ai/chat`. Field names follow the OpenAI chat
    completion request (`max_tokens`, not camelCase).
    """
    messages: Optional[List[ChatMessage]] = None
    model: Optional[str] = None
    temperature: Optional[float] = 0.7
    max_tokens: Optional[int] = 4000


class ChatResponse(BaseModel):
    content: str


class GenerateCardsRequest(WireModel):
    """Body of `POST /api/ai/generate-cards`."""
    request: str
    document_text: Optional[str] = None
    model: Optional[str] = None


class GeneratedCard(WireModel):
    title: str
    content: str
    sources: List[str] = Field(default_factory=list)
    sections: List[str] = Field(default_factory=list)
    ai_generated: bool = True


class GenerateCardsResponse(WireModel):
    cards: List[GeneratedCard]
    state: str
    requested_count: int
    errors: List[str] = Field(default_factory=list)
    progress: List[str] = Field(default_factory=list)


class DraftCardRequest(WireModel):
    """Body of `POST /api/ai/draft-card`; a non-empty `currentContent` switches to edit mode."""
    prompt: Optional[str] = None
    history: List[ChatMessage] = Field(default_factory=list)
    current_content: Optional[str] = None
    model: Optional[str] = None


class DraftedCard(WireModel):
    title: str
    content: str
    sources: List[str] = Field(default_factory=list)


class ExtractedText(WireModel):
    filename: str
    size: int
    text: str


class HealthCheck(BaseModel):
    status: str = "ok"
    timestamp: datetime
