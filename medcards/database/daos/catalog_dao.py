"""
Catalog DAOs

Purpose
-------
Generic create/list access for the unscoped reference records:
`Template`, `Entry`, `Category` and `Link`.

Design
------
- Same contract as the other DAOs: caller-supplied `Session`, exceptions
  are logged and re-raised.
- `fetchById` is used by the service layer to check foreign-key existence
  before inserting a dependent row.
"""

import logging
import uuid

from sqlalchemy.orm import Session
from medcards.database.entities.templates import Template, Entry
from medcards.database.entities.categories import Category, Link

logger = logging.getLogger(__name__)


class CatalogDao:
    """
    Base DAO parameterized by the ORM model it serves.
    """

    model = None

    def create(self, session: Session, record):
        try:
            session.add(record)
            session.flush()
            return record
        except Exception as e:
            logger.error("Error in %s.create. Error Message: %s", type(self).__name__, e)
            raise

    def fetchAll(self, session: Session):
        try:
            return session.query(self.model).all()
        except Exception as e:
            logger.error("Error in %s.fetchAll. Error Message: %s", type(self).__name__, e)
            raise

    def fetchById(self, session: Session, record_id: uuid.UUID):
        try:
            return session.get(self.model, record_id)
        except Exception as e:
            logger.error("Error in %s.fetchById. Error Message: %s", type(self).__name__, e)
            raise


class TemplateDao(CatalogDao):
    model = Template


class EntryDao(CatalogDao):
    model = Entry


class CategoryDao(CatalogDao):
    model = Category


class LinkDao(CatalogDao):
    model = Link
