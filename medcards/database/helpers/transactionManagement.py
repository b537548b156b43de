"""
Transaction scope for service functions
=======================================

Service functions in ``medcards.database.core.funcs`` never open sessions
themselves. They are decorated with ``@transactional`` and receive the
active ``Session`` as a ``session`` keyword argument.

The session lives in a context variable, so a service that calls another
service (e.g. a card update that first checks ownership) shares one unit of
work. Only the outermost call commits; any exception raised inside it rolls
the whole unit back and propagates unchanged to the router, which maps
domain errors (``CardNotFoundError``...) to HTTP statuses.

Sessions are built with ``expire_on_commit=False`` so that the plain dicts
returned by services can still be read from the ORM rows after commit.
"""

from functools import wraps
from sqlalchemy.orm import Session, sessionmaker
import contextvars
import logging
from typing import Optional
from medcards.database.config.connection_engine import connection_engine

logger = logging.getLogger(__name__)

db_session_context: "contextvars.ContextVar[Optional[Session]]" = contextvars.ContextVar(
    "db_session_context", default=None
)
"""Session of the unit of work currently running, if any."""

SessionFactory = sessionmaker(bind=connection_engine, expire_on_commit=False)


def transactional(func):
    """
    Run `func` inside the current unit of work, opening one if needed.

    The decorated function must accept a ``session`` keyword argument and
    must not be given one by its caller.

    Example
    -------
    >>> @transactional
    ... def count_cards(session: Session, user_id):
    ...     return len(MedicalCardDao().fetchCardsByUserId(session, user_id))
    >>> count_cards(user_id=some_uuid)
    """
    @wraps(func)
    def wrap_func(*args, **kwargs):
        current = db_session_context.get()
        if current is not None:
            return func(*args, session=current, **kwargs)

        session = SessionFactory()
        token = db_session_context.set(session)
        try:
            result = func(*args, session=session, **kwargs)
            session.commit()
            return result
        except Exception:
            logger.debug("Rolling back %s", func.__qualname__)
            session.rollback()
            raise
        finally:
            session.close()
            db_session_context.reset(token)

    return wrap_func
