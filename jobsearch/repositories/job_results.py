"""
Job Results Repository.

Responsibilities:
- Snapshot the ordered job ids one title query returned for a user.
- List a user's snapshots, newest first.
- Search snapshots by their query title.

Invariant:
Every query execution creates a new snapshot; nothing is deduplicated.
"""

from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import or_, select

from ..errors import NotFoundError
from ..schema import EntityKind
from ..search import query_terms, rank
from .base import Repository, now
from .jobs import like_pattern


class JobResultRepository(Repository):
    kind = EntityKind.JOB_RESULT

    def _newest_first(self, stmt):
        return stmt.order_by(self.model.created_at.desc(), self.model.id.desc())

    def record_job_result(self, user_id: str, job_ids: Sequence[str], query_title: str,
                          created_at: Optional[datetime] = None) -> str:
        return self._insert({
            "user_id": user_id,
            "jobs": list(job_ids) if isinstance(job_ids, (list, tuple)) else job_ids,
            "query_title": query_title,
            "created_at": created_at or now(),
        })

    def list_results_for_user(self, user_id: str) -> List:
        """All snapshots for a user, newest first (ties: id descending)."""
        stmt = self._newest_first(select(self.model).where(self.model.user_id == user_id))
        with self._sessions() as session:
            return list(session.scalars(stmt))

    def get_latest_result(self, user_id: str):
        stmt = self._newest_first(select(self.model).where(self.model.user_id == user_id)).limit(1)
        with self._sessions() as session:
            result = session.scalars(stmt).first()
        if result is None:
            raise NotFoundError(self.kind.value, f"results for user {user_id}")
        return result

    def search_results_by_query(self, text: str, user_id: Optional[str] = None) -> List:
        terms = query_terms(text)
        if not terms:
            return []
        stmt = select(self.model).where(
            or_(*[self.model.query_title.ilike(like_pattern(t)) for t in terms])
        )
        if user_id is not None:
            stmt = stmt.where(self.model.user_id == user_id)
        with self._sessions() as session:
            candidates = list(session.scalars(stmt))
        return rank(text, candidates, text_of=lambda r: r.query_title, id_of=lambda r: r.id)

    def load_latest_page_results(self, user_id: str) -> List[Dict[str, str]]:
        """
        The newest snapshot as flat page results.

        Each entry has business_name, url and description, in snapshot
        order. Jobs or businesses that no longer exist are skipped.
        """
        latest = self.get_latest_result(user_id)
        jobs = self._store.jobs.get_jobs_by_ids(latest.jobs)
        businesses = {
            b.id: b
            for b in self._store.businesses.get_businesses_by_ids(
                list(dict.fromkeys(j.business_id for j in jobs))
            )
        }
        results = []
        for job in jobs:
            business = businesses.get(job.business_id)
            if business is None:
                continue
            results.append({
                "business_name": business.name,
                "url": job.url,
                "description": job.description,
            })
        return results
