"""
MedicalCard DAO

Purpose
-------
Provides a thin data-access layer for the `MedicalCard` ORM entity:
- Create cards
- Query a user's cards (optionally by specialty), public cards, or a single
  card restricted to its owner
- Apply field updates and delete

Design
------
- Requires an active SQLAlchemy `Session` supplied by the caller.
- Ownership is expressed in the query (`fetchOwnedCard`) so that "missing"
  and "owned by someone else" are indistinguishable to the caller.
- Section filtering is done in Python because `sections` is a JSON list and
  membership tests are not portable across backends.
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import desc
from sqlalchemy.orm import Session
from medcards.database.entities.medical_card import MedicalCard

logger = logging.getLogger(__name__)

IMMUTABLE_FIELDS = {"id", "user_id", "created_at"}


class MedicalCardDao:
    """
    Data Access Object (DAO) for managing MedicalCard entities.
    """

    def createCard(self, session: Session, card: MedicalCard) -> MedicalCard:
        try:
            session.add(card)
            session.flush()
            return card
        except Exception as e:
            logger.error("Error in MedicalCardDao.createCard. Error Message: %s", e)
            raise

    def fetchCardsByUserId(
        self,
        session: Session,
        user_id: uuid.UUID,
        specialty: Optional[str] = None,
        section: Optional[str] = None,
    ):
        """
        Fetch the cards owned by `user_id`, newest first.

        Parameters
        ----------
        specialty : str, optional
            Exact specialty key to match.
        section : str, optional
            Keep only cards whose `sections` contain this key.

        Returns
        -------
        list[MedicalCard]
        """
        try:
            query = session.query(MedicalCard).filter(MedicalCard.user_id == user_id)
            if specialty:
                query = query.filter(MedicalCard.specialty == specialty)
            cards = query.order_by(desc(MedicalCard.created_at)).all()
            if section:
                cards = [card for card in cards if section in (card.sections or [])]
            return cards
        except Exception as e:
            logger.error("Error in MedicalCardDao.fetchCardsByUserId. Error Message: %s", e)
            raise

    def fetchOwnedCard(self, session: Session, user_id: uuid.UUID, card_id: uuid.UUID) -> Optional[MedicalCard]:
        """Return the card only if it exists and belongs to `user_id`."""
        try:
            return (
                session.query(MedicalCard)
                .filter(MedicalCard.id == card_id, MedicalCard.user_id == user_id)
                .first()
            )
        except Exception as e:
            logger.error("Error in MedicalCardDao.fetchOwnedCard. Error Message: %s", e)
            raise

    def fetchPublicCards(self, session: Session):
        try:
            return (
                session.query(MedicalCard)
                .filter(MedicalCard.is_public.is_(True))
                .order_by(desc(MedicalCard.created_at))
                .all()
            )
        except Exception as e:
            logger.error("Error in MedicalCardDao.fetchPublicCards. Error Message: %s", e)
            raise

    def updateCard(self, session: Session, card: MedicalCard, changes: dict) -> MedicalCard:
        """
        Apply `changes` (column name → value) to `card`.

        Ownership and identity columns are never overwritten.
        """
        try:
            for key, value in changes.items():
                if key in IMMUTABLE_FIELDS:
                    continue
                setattr(card, key, value)
            session.flush()
            return card
        except Exception as e:
            logger.error("Error in MedicalCardDao.updateCard. Error Message: %s", e)
            raise

    def deleteCard(self, session: Session, card: MedicalCard) -> None:
        try:
            session.delete(card)
            session.flush()
        except Exception as e:
            logger.error("Error in MedicalCardDao.deleteCard. Error Message: %s", e)
            raise
