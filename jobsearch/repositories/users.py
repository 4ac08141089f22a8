"""
Users Repository.

Responsibilities:
- Register users with a globally unique, case-insensitive email.
- Look users up by id or email.
- Replace a user's password hash.

Invariant:
Email uniqueness is enforced by the unique index in the same INSERT that
creates the user, never by a prior lookup.
"""

from sqlalchemy import select, update

from ..errors import DuplicateEmailError, NotFoundError
from ..normalize import normalize_email
from ..schema import EntityKind, validate
from .base import Repository, logger, now


class UserRepository(Repository):
    kind = EntityKind.USER

    def _conflict(self, document):
        logger.info("Registration rejected: email already in use", email=document["email"])
        return DuplicateEmailError(document["email"])

    def create_user(self, username: str, email: str, password_hash: str) -> str:
        """
        Register a user.

        Returns:
            The new user id

        Raises:
            DuplicateEmailError: If the (normalized) email is taken
            ValidationError: If a field has the wrong type
        """
        return self._insert({
            "username": username,
            "email": normalize_email(email) if isinstance(email, str) else email,
            "password_hash": password_hash,
            "created_at": now(),
        })

    def get_user(self, user_id: str):
        user = self._get(user_id)
        if user is None:
            raise NotFoundError(self.kind.value, user_id)
        return user

    def get_by_email(self, email: str):
        with self._sessions() as session:
            user = session.scalars(
                select(self.model).where(self.model.email == normalize_email(email))
            ).first()
        if user is None:
            raise NotFoundError(self.kind.value, email)
        return user

    def update_password_hash(self, user_id: str, password_hash: str) -> None:
        """The only mutable user field."""
        current = self.get_user(user_id)
        doc = {
            "id": current.id,
            "username": current.username,
            "email": current.email,
            "password_hash": password_hash,
            "created_at": current.created_at,
        }
        validate(self.kind, doc)
        with self._sessions.begin() as session:
            result = session.execute(
                update(self.model)
                .where(self.model.id == user_id)
                .values(password_hash=password_hash)
            )
            if result.rowcount == 0:
                raise NotFoundError(self.kind.value, user_id)
        logger.info("Password hash updated", user_id=user_id)
