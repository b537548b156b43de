"""
FastAPI Routers: Auth • Medical Cards • Catalog • AI Proxy
===========================================================

Purpose
-------
Defines the HTTP API for:
- Authentication: register, login, current user, logout
- Medical cards: list, create, update, delete (scoped to the caller)
- Public cards: list, publish an owned card
- Catalog records: templates, entries, categories, links
- AI: chat completion proxy, single-card drafting, batched card generation,
  document text extraction

Key Notes
---------
- Input validation via Pydantic models in `medcards.api.models`.
- Every `/api/*` route except register/login requires `Authorization: Bearer <token>`.
- Cards that are missing or owned by someone else both answer 404.
- Errors are raised as HTTPException and rendered as `{"error": ...}` by the
  handlers registered in `medcards.main`.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool

from medcards.api import llm_pipeline
from medcards.api.models import (
    AuthResponse,
    CategoryIn,
    CategoryOut,
    ChatRequest,
    ChatResponse,
    DraftCardRequest,
    DraftedCard,
    EntryIn,
    EntryOut,
    ExtractedText,
    GenerateCardsRequest,
    GenerateCardsResponse,
    LinkIn,
    LinkOut,
    MedicalCardCreate,
    MedicalCardOut,
    MedicalCardUpdate,
    MeResponse,
    MessageResponse,
    TemplateIn,
    TemplateOut,
    UserCredentials,
    UserData,
)
from medcards.api.prompt_utilities import UnsupportedDocumentError, extract_text
from medcards.api.utils import create_access_token, get_current_user_id
from medcards.database.config.config import settings
from medcards.database.core.funcs import (
    CardNotFoundError,
    DuplicateEmailError,
    MissingFieldsError,
    ReferenceNotFoundError,
    create_card,
    create_category,
    create_entry,
    create_link,
    create_template,
    delete_card,
    get_user,
    list_cards,
    list_categories,
    list_entries,
    list_links,
    list_public_cards,
    list_templates,
    login_user,
    make_card_public,
    register_user,
    update_card,
)
from medcards.generation import GenerationSession

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/api/auth", tags=["auth"])
"""Register/login are public; the other auth routes declare the bearer dependency."""

router = APIRouter(prefix="/api", dependencies=[Depends(get_current_user_id)])
"""Every route on this router sits behind the bearer-token gate."""


def _issue_token(user: dict) -> str:
    return create_access_token({"sub": user["id"], "email": user["email"]})


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

@auth_router.post("/register", response_model=AuthResponse)
def register(data: UserData):
    """Register a new account and return it with a fresh token.

    Response:
        200: {user, token}
        400: missing e-mail/password, or e-mail already registered
    """
    try:
        user = register_user(email=data.email, password=data.password, name=data.name)
    except (MissingFieldsError, DuplicateEmailError) as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"user": user, "token": _issue_token(user)}


@auth_router.post("/login", response_model=AuthResponse)
def login(data: UserCredentials):
    """Authenticate a user.

    Response:
        200: {user, token}
        400: missing e-mail/password
        401: "Invalid credentials" for an unknown e-mail and a wrong password alike
    """
    try:
        auth = login_user(email=data.email, password=data.password)
    except MissingFieldsError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not auth["authenticated"]:
        raise HTTPException(status_code=401, detail=auth["detail"])
    user = auth["user_details"]
    return {"user": user, "token": _issue_token(user)}


@auth_router.get("/me", response_model=MeResponse)
def me(user_id: str = Depends(get_current_user_id)):
    user = get_user(user_id=user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return {"user": user}


@auth_router.post("/logout", response_model=MessageResponse)
def logout(user_id: str = Depends(get_current_user_id)):
    """Tokens are stateless; the client discards its copy."""
    return {"message": "Logged out successfully"}


# ---------------------------------------------------------------------------
# Medical cards
# ---------------------------------------------------------------------------

@router.get("/medical-cards", response_model=List[MedicalCardOut])
def get_medical_cards(
    specialty: Optional[str] = None,
    section: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
):
    """List the caller's cards, newest first, optionally by specialty and/or section."""
    return list_cards(user_id=user_id, specialty=specialty, section=section)


@router.post("/medical-cards", response_model=MedicalCardOut)
def post_medical_card(data: MedicalCardCreate, user_id: str = Depends(get_current_user_id)):
    return create_card(user_id=user_id, payload=data)


@router.put("/medical-cards/{card_id}", response_model=MedicalCardOut)
def put_medical_card(card_id: str, data: MedicalCardUpdate, user_id: str = Depends(get_current_user_id)):
    try:
        return update_card(user_id=user_id, card_id=card_id, payload=data)
    except CardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/medical-cards/{card_id}", response_model=MessageResponse)
def delete_medical_card(card_id: str, user_id: str = Depends(get_current_user_id)):
    try:
        delete_card(user_id=user_id, card_id=card_id)
    except CardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"message": "Card deleted successfully"}


@router.get("/public-cards", response_model=List[MedicalCardOut])
def get_public_cards():
    return list_public_cards()


@router.post("/public-cards/make-public/{card_id}", response_model=MedicalCardOut)
def post_make_public(card_id: str, user_id: str = Depends(get_current_user_id)):
    """Publish one of the caller's cards."""
    try:
        return make_card_public(user_id=user_id, card_id=card_id)
    except CardNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


# ---------------------------------------------------------------------------
# Templates, entries, categories, links
# ---------------------------------------------------------------------------

@router.get("/templates", response_model=List[TemplateOut])
def get_templates():
    return list_templates()


@router.post("/templates", response_model=TemplateOut)
def post_template(data: TemplateIn):
    return create_template(payload=data)


@router.get("/entries", response_model=List[EntryOut])
def get_entries():
    return list_entries()


@router.post("/entries", response_model=EntryOut)
def post_entry(data: EntryIn):
    try:
        return create_entry(payload=data)
    except ReferenceNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/categories", response_model=List[CategoryOut])
def get_categories():
    return list_categories()


@router.post("/categories", response_model=CategoryOut)
def post_category(data: CategoryIn):
    return create_category(payload=data)


@router.get("/links", response_model=List[LinkOut])
def get_links():
    return list_links()


@router.post("/links", response_model=LinkOut)
def post_link(data: LinkIn):
    try:
        return create_link(payload=data)
    except ReferenceNotFoundError as e:
        raise HTTPException(status_code=400, detail=str(e))


# ---------------------------------------------------------------------------
# AI
# ---------------------------------------------------------------------------

@router.post("/ai/chat", response_model=ChatResponse)
def ai_chat(data: ChatRequest):
    """Proxy a chat completion to the configured provider.

    Response:
        200: {content}
        400: "messages array is required"
        500: provider key unset, or the upstream error message
    """
    if not data.messages:
        raise HTTPException(status_code=400, detail="messages array is required")
    try:
        content = llm_pipeline.chat_completion(
            [m.model_dump() for m in data.messages],
            model=data.model,
            temperature=data.temperature,
            max_tokens=data.max_tokens,
        )
    except (llm_pipeline.ProviderNotConfiguredError, llm_pipeline.ProviderError) as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"content": content}


@router.post("/ai/generate-cards", response_model=GenerateCardsResponse)
def ai_generate_cards(data: GenerateCardsRequest):
    """Run a batched generation session and return the ready cards.

    Partial results are returned with the errors of the failed batches; if
    the first batch fails the answer has no cards, state "idle" and the error.
    """
    if not data.request or not data.request.strip():
        raise HTTPException(status_code=400, detail="request is required")
    if not settings.LLM_API_KEY:
        raise HTTPException(status_code=500, detail=str(llm_pipeline.ProviderNotConfiguredError()))

    session = GenerationSession(llm_pipeline.make_completer(data.model))
    cards = session.run(data.request, document_text=data.document_text)
    return {
        "cards": cards,
        "state": session.state.value,
        "requested_count": session.target,
        "errors": session.errors,
        "progress": session.progress,
    }


@router.post("/ai/draft-card", response_model=DraftedCard)
def ai_draft_card(data: DraftCardRequest):
    """Draft one card from a prompt, or revise the card in `currentContent`.

    Response:
        200: {title, content, sources}
        400: "prompt is required"
        500: provider key unset, or the upstream error message
    """
    if not data.prompt or not data.prompt.strip():
        raise HTTPException(status_code=400, detail="prompt is required")
    try:
        return llm_pipeline.draft_card(
            data.prompt.strip(),
            history=[m.model_dump() for m in data.history],
            current_content=data.current_content,
            model=data.model,
        )
    except (llm_pipeline.ProviderNotConfiguredError, llm_pipeline.ProviderError) as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/ai/extract-text", response_model=ExtractedText)
async def ai_extract_text(file: UploadFile = File(...)):
    """Extract plain text from an uploaded .txt, .md, .pdf or .docx file."""
    data = await file.read()
    max_bytes = settings.MAX_UPLOAD_SIZE_MB * 1024 * 1024
    if len(data) > max_bytes:
        raise HTTPException(status_code=400, detail=f"File too large. Maximum size: {settings.MAX_UPLOAD_SIZE_MB}MB")
    try:
        text = await run_in_threadpool(extract_text, file.filename or "", data)
    except UnsupportedDocumentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"filename": file.filename or "", "size": len(data), "text": text}
