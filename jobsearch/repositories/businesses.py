"""
Businesses Repository.

Responsibilities:
- Store businesses discovered under a geo search, singly or in bulk.
- Lookups by id, by parent geo result and by name.

Non-Responsibilities:
- No discovery: businesses come from the ingestion pipeline.
"""

from typing import Any, Dict, List, Sequence

from sqlalchemy import select

from ..normalize import canonical_url
from ..schema import EntityKind
from .base import Repository


def _business_document(data: Dict[str, Any]) -> Dict[str, Any]:
    doc = dict(data)
    if isinstance(doc.get("url"), str):
        doc["url"] = canonical_url(doc["url"])
    return doc


class BusinessRepository(Repository):
    kind = EntityKind.BUSINESS

    def add_business(self, geo_result_id: str, name: str, address: str, url: str,
                     lat: float, lon: float) -> str:
        return self._insert(_business_document({
            "geo_result_id": geo_result_id,
            "name": name,
            "address": address,
            "url": url,
            "lat": lat,
            "lon": lon,
        }))

    def save_businesses(self, businesses: Sequence[Dict[str, Any]]) -> List[str]:
        """Insert many businesses in one transaction; returns ids in input order."""
        return self._insert_many([_business_document(b) for b in businesses])

    def get_businesses_by_ids(self, ids: Sequence[str]) -> List:
        """Businesses in the requested order; unknown ids are skipped."""
        if not ids:
            return []
        with self._sessions() as session:
            rows = {
                b.id: b
                for b in session.scalars(select(self.model).where(self.model.id.in_(set(ids))))
            }
        return [rows[i] for i in ids if i in rows]

    def list_for_geo_result(self, geo_result_id: str) -> List:
        stmt = (
            select(self.model)
            .where(self.model.geo_result_id == geo_result_id)
            .order_by(self.model.name, self.model.id)
        )
        with self._sessions() as session:
            return list(session.scalars(stmt))

    def find_by_name(self, name: str) -> List:
        stmt = select(self.model).where(self.model.name == name).order_by(self.model.id)
        with self._sessions() as session:
            return list(session.scalars(stmt))
