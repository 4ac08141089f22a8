"""
Jobs Repository.

Responsibilities:
- Store job postings under a business, singly or in bulk.
- Full-text search over titles.
- Lookups by id and by parent business.

Non-Responsibilities:
- No scraping of job pages.

Invariant:
Search results for the same query over the same rows are always in the
same order.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from sqlalchemy import or_, select

from ..normalize import canonical_url
from ..schema import EntityKind
from ..search import query_terms, rank
from .base import Repository, logger


def _job_document(data: Dict[str, Any]) -> Dict[str, Any]:
    doc = dict(data)
    if isinstance(doc.get("url"), str):
        doc["url"] = canonical_url(doc["url"])
    return doc


def like_pattern(term: str) -> str:
    # Every surface form that stems to term contains term, except "-ies"
    # plurals, which only share term without its final "y".
    prefix = term[:-1] if term.endswith("y") else term
    return f"%{prefix}%"


class JobRepository(Repository):
    kind = EntityKind.JOB

    def add_job(self, business_id: str, title: str, description: str, url: str,
                posted_at: Optional[datetime] = None) -> str:
        return self._insert(_job_document({
            "business_id": business_id,
            "title": title,
            "description": description,
            "url": url,
            "posted_at": posted_at,
        }))

    def save_jobs(self, jobs: Sequence[Dict[str, Any]]) -> List[str]:
        """Insert many jobs in one transaction; returns ids in input order."""
        return self._insert_many([_job_document(j) for j in jobs])

    def get_jobs_by_ids(self, ids: Sequence[str]) -> List:
        """Jobs in the requested order; unknown ids are skipped."""
        if not ids:
            return []
        with self._sessions() as session:
            rows = {
                j.id: j
                for j in session.scalars(select(self.model).where(self.model.id.in_(set(ids))))
            }
        return [rows[i] for i in ids if i in rows]

    def list_jobs_for_business(self, business_id: str) -> List:
        stmt = (
            select(self.model)
            .where(self.model.business_id == business_id)
            .order_by(self.model.title, self.model.id)
        )
        with self._sessions() as session:
            return list(session.scalars(stmt))

    def search_jobs_by_title(self, query_text: str, limit: Optional[int] = None) -> List:
        """
        Full-text search over job titles.

        Candidates are narrowed in SQL with one LIKE per query term, then
        matched and ranked on exact terms (see jobsearch.search).

        Args:
            query_text: Free text, e.g. "backend engineer"
            limit: Optional cap on returned jobs

        Returns:
            Matching jobs, most relevant first
        """
        terms = query_terms(query_text)
        if not terms:
            return []
        stmt = select(self.model).where(
            or_(*[self.model.title.ilike(like_pattern(t)) for t in terms])
        )
        with self._sessions() as session:
            candidates = list(session.scalars(stmt))

        ranked = rank(query_text, candidates, text_of=lambda j: j.title, id_of=lambda j: j.id)
        logger.debug("Title search", query=query_text, candidates=len(candidates), matches=len(ranked))
        return ranked[:limit] if limit is not None else ranked
