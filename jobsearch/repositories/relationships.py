"""
Starred / Applied Jobs Repository.

Responsibilities:
- Star and unstar jobs, apply and withdraw.
- List a user's starred and applied job ids.

Invariant:
At most one relation of each kind per (user, job). The unique index and
the INSERT are a single statement, so concurrent callers cannot both win.
Deletes are a single DELETE whose row count decides NotFoundError.
"""

from typing import Set

from sqlalchemy import delete, select

from ..errors import AlreadyExistsError, NotFoundError
from ..schema import EntityKind
from .base import Repository, logger, now


class _RelationRepository(Repository):

    def _conflict(self, document):
        return AlreadyExistsError(self.kind.value, (document["user_id"], document["job_id"]))

    def link(self, user_id: str, job_id: str) -> str:
        return self._insert({
            "user_id": user_id,
            "job_id": job_id,
            "timestamp": now(),
        })

    def unlink(self, user_id: str, job_id: str) -> None:
        with self._sessions.begin() as session:
            result = session.execute(
                delete(self.model).where(
                    self.model.user_id == user_id, self.model.job_id == job_id
                )
            )
            deleted = result.rowcount
        if deleted == 0:
            raise NotFoundError(self.kind.value, (user_id, job_id))
        logger.debug("Relation removed", collection=self.kind.value, user_id=user_id, job_id=job_id)

    def exists(self, user_id: str, job_id: str) -> bool:
        stmt = select(self.model.id).where(
            self.model.user_id == user_id, self.model.job_id == job_id
        )
        with self._sessions() as session:
            return session.scalars(stmt).first() is not None

    def job_ids(self, user_id: str) -> Set[str]:
        with self._sessions() as session:
            return set(session.scalars(
                select(self.model.job_id).where(self.model.user_id == user_id)
            ))


class _StarredJobs(_RelationRepository):
    kind = EntityKind.STARRED_JOB


class _AppliedJobs(_RelationRepository):
    kind = EntityKind.APPLIED_JOB


class RelationshipRepository:
    """Starred and applied jobs of users."""

    def __init__(self, store):
        self.starred = _StarredJobs(store)
        self.applied = _AppliedJobs(store)

    def star_job(self, user_id: str, job_id: str) -> str:
        """Raises AlreadyExistsError if the job is already starred; safe to ignore on retry."""
        return self.starred.link(user_id, job_id)

    def apply_to_job(self, user_id: str, job_id: str) -> str:
        """Raises AlreadyExistsError if already applied."""
        return self.applied.link(user_id, job_id)

    def unstar(self, user_id: str, job_id: str) -> None:
        self.starred.unlink(user_id, job_id)

    def withdraw_application(self, user_id: str, job_id: str) -> None:
        self.applied.unlink(user_id, job_id)

    def list_starred(self, user_id: str) -> Set[str]:
        return self.starred.job_ids(user_id)

    def list_applied(self, user_id: str) -> Set[str]:
        return self.applied.job_ids(user_id)

    def is_starred(self, user_id: str, job_id: str) -> bool:
        return self.starred.exists(user_id, job_id)

    def has_applied(self, user_id: str, job_id: str) -> bool:
        return self.applied.exists(user_id, job_id)
