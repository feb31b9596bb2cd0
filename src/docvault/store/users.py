"""User account persistence."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from .models import NewUser, User
from .schema import UserRow


class UserStore:
    """Create and look up the accounts that own document trees."""

    def __init__(self, sessions: sessionmaker[Session]) -> None:
        self._sessions = sessions

    def create_user(self, user: NewUser) -> User:
        """Insert a user and return the stored record.

        Raises:
            sqlalchemy.exc.IntegrityError: If the external id is already taken.
        """
        with self._sessions.begin() as session:
            row = UserRow(external_id=user.external_id, role=int(user.role))
            if user.id is not None:
                row.id = user.id
            session.add(row)
            session.flush()
            return User.model_validate(row.to_dict())

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        with self._sessions() as session:
            row = session.get(UserRow, user_id)
            return User.model_validate(row.to_dict()) if row is not None else None

    def get_user_by_external_id(self, external_id: str) -> Optional[User]:
        with self._sessions() as session:
            row = session.scalar(select(UserRow).where(UserRow.external_id == external_id))
            return User.model_validate(row.to_dict()) if row is not None else None


__all__ = ["UserStore"]
