"""
Geo Results Repository.

Responsibilities:
- Record each zip + radius search a user runs.
- Exact (zip, radius) lookups and per-user listings, both index backed.

Non-Responsibilities:
- No geocoding and no radius arithmetic: radius 10 never matches radius 11.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select

from ..errors import NotFoundError
from ..normalize import normalize_zip
from ..schema import EntityKind
from .base import Repository, now


class GeoResultRepository(Repository):
    kind = EntityKind.GEO_RESULT

    def record_geo_search(self, user_id: str, zip: str, radius: int,
                          created_at: Optional[datetime] = None) -> str:
        return self._insert({
            "user_id": user_id,
            "zip": normalize_zip(zip) if isinstance(zip, str) else zip,
            "radius": radius,
            "created_at": created_at or now(),
        })

    def find_by_zip_radius(self, zip: str, radius: int) -> List:
        """Geo results recorded with exactly this zip and radius, newest first."""
        stmt = (
            select(self.model)
            .where(self.model.zip == normalize_zip(zip), self.model.radius == radius)
            .order_by(self.model.created_at.desc(), self.model.id.desc())
        )
        with self._sessions() as session:
            return list(session.scalars(stmt))

    def list_for_user(self, user_id: str) -> List:
        stmt = (
            select(self.model)
            .where(self.model.user_id == user_id)
            .order_by(self.model.created_at.desc(), self.model.id.desc())
        )
        with self._sessions() as session:
            return list(session.scalars(stmt))

    def get(self, geo_result_id: str):
        row = self._get(geo_result_id)
        if row is None:
            raise NotFoundError(self.kind.value, geo_result_id)
        return row
