"""
User DAO

Persistence for `User` accounts:
- insert with the password replaced by its bcrypt hash
- lookup by e-mail (login, duplicate pre-check) and by id (`/api/auth/me`)

The session is always supplied by a `@transactional` service in
`medcards.database.core.funcs`; uniqueness messages and token issuing live
there too. Failures are logged and re-raised untouched, so an
`IntegrityError` on the unique e-mail index reaches the service, which turns
it into `DuplicateEmailError`.
"""

import logging
import uuid
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session
from medcards.database.entities.user import User
from medcards.crypt.encrypt_decrypt import EncryptionDec

logger = logging.getLogger(__name__)


class UserDao:
    """
    Data Access Object (DAO) for `app_user` rows.
    """

    def createUser(self, session: Session, user_data: User) -> User:
        """
        Hash the plaintext password held by `user_data` and insert the row.

        The flush happens here so that a duplicate e-mail fails inside the
        caller's ``try`` block rather than at commit time.
        """
        try:
            user_data.password = EncryptionDec().hash_password(text=user_data.password)
            session.add(user_data)
            session.flush()
            return user_data
        except Exception as e:
            logger.error("UserDao.createUser failed for %s: %s", user_data.email, e)
            raise

    def fetchUserByEmail(self, session: Session, email: str) -> List[User]:
        """Matching users as a list (empty or one element)."""
        try:
            return list(session.scalars(select(User).where(User.email == email).limit(1)))
        except Exception as e:
            logger.error("UserDao.fetchUserByEmail failed: %s", e)
            raise

    def fetchUserById(self, session: Session, user_id: uuid.UUID) -> Optional[User]:
        try:
            return session.get(User, user_id)
        except Exception as e:
            logger.error("UserDao.fetchUserById failed for %s: %s", user_id, e)
            raise
