from .businesses import BusinessRepository
from .geo_results import GeoResultRepository
from .job_results import JobResultRepository
from .jobs import JobRepository
from .relationships import RelationshipRepository
from .users import UserRepository

__all__ = [
    "BusinessRepository",
    "GeoResultRepository",
    "JobResultRepository",
    "JobRepository",
    "RelationshipRepository",
    "UserRepository",
]
