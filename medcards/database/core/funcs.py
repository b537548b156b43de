"""
Service-layer operations for authentication, medical cards and the generic
catalog records (templates, entries, categories, links).

All functions are wrapped with the `@transactional` decorator, which manages
SQLAlchemy sessions and transactions automatically. Each function accepts (and
uses) an injected `session: Session` provided by the decorator.

Functions return plain dicts (snake_case keys) so that no ORM instance leaks
out of its session; the API layer turns them into response models. Policy
violations are reported with the exceptions defined at the top of the
module, which the routers map to HTTP statuses.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from medcards.api.models import (
    CategoryIn,
    EntryIn,
    LinkIn,
    MedicalCardCreate,
    MedicalCardUpdate,
    TemplateIn,
)
from medcards.crypt.encrypt_decrypt import EncryptionDec
from medcards.database.daos.catalog_dao import CategoryDao, EntryDao, LinkDao, TemplateDao
from medcards.database.daos.medical_card_dao import MedicalCardDao
from medcards.database.daos.user_dao import UserDao
from medcards.database.entities.categories import Category, Link
from medcards.database.entities.medical_card import MedicalCard
from medcards.database.entities.templates import Entry, Template
from medcards.database.entities.user import User
from medcards.database.helpers.transactionManagement import transactional
from medcards.localized import to_wire

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class MissingFieldsError(ValueError):
    """Required request fields are absent."""


class DuplicateEmailError(ValueError):
    """An account already exists for the e-mail address."""

    def __init__(self, message: str = "This email has an existing account"):
        super().__init__(message)


class CardNotFoundError(LookupError):
    """The card does not exist or is not owned by the caller."""

    def __init__(self, message: str = "Card not found"):
        super().__init__(message)


class ReferenceNotFoundError(ValueError):
    """A foreign key in the payload points at a missing row."""


def parse_uuid(value) -> Optional[uuid.UUID]:
    """Return `value` as a UUID, or None when it is not a valid identifier."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError):
        return None


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def card_to_dict(card: MedicalCard) -> dict:
    return {
        "id": str(card.id),
        "user_id": str(card.user_id),
        "title": card.title,
        "content": card.content,
        "specialty": card.specialty,
        "sections": list(card.sections or []),
        "tags": list(card.tags or []),
        "urgency": card.urgency,
        "references": list(card.references or []),
        "ai_generated": bool(card.ai_generated),
        "ai_sources": list(card.ai_sources or []),
        "is_public": bool(card.is_public),
        "color": card.color,
        "created_at": card.created_at,
        "updated_at": card.updated_at,
    }


def _card_columns(payload, exclude_unset: bool = False) -> dict:
    """Map a card request model onto column values (localized text back to wire shape)."""
    values = payload.model_dump(exclude_unset=exclude_unset)
    for key in ("title", "content"):
        if key in values and values[key] is not None:
            values[key] = to_wire(getattr(payload, key))
    if exclude_unset:
        # explicit nulls on non-nullable columns are ignored
        values = {k: v for k, v in values.items() if v is not None or k in ("specialty", "color")}
    return values


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

@transactional
def register_user(session: Session, email: Optional[str], password: Optional[str], name: Optional[str] = None) -> dict:
    """
    Create a new account.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session (injected by @transactional).
    email, password : str
        Required credentials; the password is hashed at DAO level.
    name : str, optional
        Display name (defaults to the e-mail local part).

    Returns
    -------
    dict
        Public user fields: {id, email, name, createdAt}.

    Raises
    ------
    MissingFieldsError
        If e-mail or password is missing.
    DuplicateEmailError
        If the e-mail already has an account, whether detected by the
        pre-check or by the unique constraint at insert time.
    """
    email = (email or "").strip()
    if not email or not password:
        raise MissingFieldsError("Email and password are required")

    user_dao = UserDao()
    if user_dao.fetchUserByEmail(session=session, email=email):
        raise DuplicateEmailError()

    user = User(email=email, password=password, name=name)
    try:
        user_dao.createUser(session=session, user_data=user)
    except IntegrityError as e:
        raise DuplicateEmailError() from e
    logger.info("Registered user %s", user.id)
    return user.to_public_dict()


@transactional
def login_user(session: Session, email: Optional[str], password: Optional[str]) -> dict:
    """
    Authenticate a user by e-mail and password.

    Returns
    -------
    dict
        - authenticated (bool): True if credentials are valid.
        - detail (str): "" on success, otherwise the generic message.
        - user_details (dict | None): public user fields on success.

    Notes
    -----
    - Unknown e-mail and wrong password produce the same `detail` and both
      pay for a bcrypt comparison.
    """
    if not email or not password:
        raise MissingFieldsError("Email and password are required")

    user_dao = UserDao()
    enc = EncryptionDec()
    users_fetched = user_dao.fetchUserByEmail(session, email.strip())
    if not users_fetched:
        enc.burn_check(password)
        return {"authenticated": False, "detail": INVALID_CREDENTIALS, "user_details": None}

    user = users_fetched[0]
    if enc.check_passwords(password, user.password):
        return {"authenticated": True, "detail": "", "user_details": user.to_public_dict()}
    return {"authenticated": False, "detail": INVALID_CREDENTIALS, "user_details": None}


@transactional
def get_user(session: Session, user_id: str) -> Optional[dict]:
    """Public fields of the user, or None if the account no longer exists."""
    user_uuid = parse_uuid(user_id)
    if user_uuid is None:
        return None
    user = UserDao().fetchUserById(session, user_uuid)
    return user.to_public_dict() if user else None


# ---------------------------------------------------------------------------
# Medical cards
# ---------------------------------------------------------------------------

@transactional
def list_cards(session: Session, user_id: str, specialty: Optional[str] = None, section: Optional[str] = None) -> list:
    """Cards owned by `user_id`, newest first, optionally filtered."""
    cards = MedicalCardDao().fetchCardsByUserId(
        session, parse_uuid(user_id), specialty=specialty, section=section
    )
    return [card_to_dict(card) for card in cards]


@transactional
def create_card(session: Session, user_id: str, payload: MedicalCardCreate) -> dict:
    """Create a card owned by `user_id`; any owner in the payload is ignored."""
    card = MedicalCard(user_id=parse_uuid(user_id), **_card_columns(payload))
    MedicalCardDao().createCard(session, card)
    return card_to_dict(card)


@transactional
def update_card(session: Session, user_id: str, card_id: str, payload: MedicalCardUpdate) -> dict:
    """
    Apply the provided fields to a card owned by `user_id`.

    Raises
    ------
    CardNotFoundError
        If the card is missing or belongs to someone else.
    """
    card_dao = MedicalCardDao()
    card_uuid = parse_uuid(card_id)
    card = card_dao.fetchOwnedCard(session, parse_uuid(user_id), card_uuid) if card_uuid else None
    if card is None:
        raise CardNotFoundError()
    card_dao.updateCard(session, card, _card_columns(payload, exclude_unset=True))
    return card_to_dict(card)


@transactional
def delete_card(session: Session, user_id: str, card_id: str) -> None:
    """
    Delete a card owned by `user_id`.

    Raises
    ------
    CardNotFoundError
        If the card is missing or belongs to someone else.
    """
    card_dao = MedicalCardDao()
    card_uuid = parse_uuid(card_id)
    card = card_dao.fetchOwnedCard(session, parse_uuid(user_id), card_uuid) if card_uuid else None
    if card is None:
        raise CardNotFoundError()
    card_dao.deleteCard(session, card)


@transactional
def list_public_cards(session: Session) -> list:
    return [card_to_dict(card) for card in MedicalCardDao().fetchPublicCards(session)]


@transactional
def make_card_public(session: Session, user_id: str, card_id: str) -> dict:
    card_dao = MedicalCardDao()
    card_uuid = parse_uuid(card_id)
    card = card_dao.fetchOwnedCard(session, parse_uuid(user_id), card_uuid) if card_uuid else None
    if card is None:
        raise CardNotFoundError()
    card_dao.updateCard(session, card, {"is_public": True})
    return card_to_dict(card)


# ---------------------------------------------------------------------------
# Templates, entries, categories, links
# ---------------------------------------------------------------------------

def _template_to_dict(t: Template) -> dict:
    return {"id": str(t.id), "name": t.name, "description": t.description,
            "layout": list(t.layout or []), "created_at": t.created_at}


def _entry_to_dict(e: Entry) -> dict:
    return {"id": str(e.id), "template_id": str(e.template_id), "data": dict(e.data or {}),
            "created_at": e.created_at}


def _category_to_dict(c: Category) -> dict:
    return {"id": str(c.id), "name": c.name, "description": c.description, "specialty": c.specialty}


def _link_to_dict(link: Link) -> dict:
    return {"id": str(link.id), "name": link.name, "url": link.url,
            "category_id": str(link.category_id) if link.category_id else None,
            "specialty": link.specialty}


@transactional
def list_templates(session: Session) -> list:
    return [_template_to_dict(t) for t in TemplateDao().fetchAll(session)]


@transactional
def create_template(session: Session, payload: TemplateIn) -> dict:
    template = Template(**payload.model_dump())
    TemplateDao().create(session, template)
    return _template_to_dict(template)


@transactional
def list_entries(session: Session) -> list:
    return [_entry_to_dict(e) for e in EntryDao().fetchAll(session)]


@transactional
def create_entry(session: Session, payload: EntryIn) -> dict:
    """
    Create an entry for an existing template.

    Raises
    ------
    ReferenceNotFoundError
        If `template_id` does not reference an existing template.
    """
    template_uuid = parse_uuid(payload.template_id)
    if template_uuid is None or TemplateDao().fetchById(session, template_uuid) is None:
        raise ReferenceNotFoundError("templateId does not reference an existing template")
    entry = Entry(template_id=template_uuid, data=payload.data)
    EntryDao().create(session, entry)
    return _entry_to_dict(entry)


@transactional
def list_categories(session: Session) -> list:
    return [_category_to_dict(c) for c in CategoryDao().fetchAll(session)]


@transactional
def create_category(session: Session, payload: CategoryIn) -> dict:
    category = Category(**payload.model_dump())
    CategoryDao().create(session, category)
    return _category_to_dict(category)


@transactional
def list_links(session: Session) -> list:
    return [_link_to_dict(link) for link in LinkDao().fetchAll(session)]


@transactional
def create_link(session: Session, payload: LinkIn) -> dict:
    category_uuid = None
    if payload.category_id:
        category_uuid = parse_uuid(payload.category_id)
        if category_uuid is None or CategoryDao().fetchById(session, category_uuid) is None:
            raise ReferenceNotFoundError("categoryId does not reference an existing category")
    link = Link(name=payload.name, url=payload.url, category_id=category_uuid, specialty=payload.specialty)
    LinkDao().create(session, link)
    return _link_to_dict(link)
