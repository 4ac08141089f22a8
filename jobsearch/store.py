"""
Store handle.

Built once at process start and passed to whoever needs the data layer.
Holds the engine, the session factory and one repository per collection.
"""

from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

from .database import init_database, make_session_factory
from .logger import get_logger
from .repositories import (
    BusinessRepository,
    GeoResultRepository,
    JobRepository,
    JobResultRepository,
    RelationshipRepository,
    UserRepository,
)
from .retry import exponential_backoff

logger = get_logger()


class JobSearchStore:
    """Shared handle to the job search database. Safe to use from several threads."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self.sessions = make_session_factory(engine)

        self.users = UserRepository(self)
        self.geo_results = GeoResultRepository(self)
        self.businesses = BusinessRepository(self)
        self.jobs = JobRepository(self)
        self.job_results = JobResultRepository(self)
        self.relationships = RelationshipRepository(self)

    def close(self) -> None:
        self.engine.dispose()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def _log_retry(attempt: int, error: Exception, delay: float) -> None:
    logger.warning(
        "Database not reachable, retrying",
        attempt=attempt, delay=delay, error=str(error),
    )


def open_store(database_url: str, connect_retries: int = 5, base_delay: float = 1.0) -> JobSearchStore:
    """
    Bootstrap the database and return a store handle.

    Creates missing tables and indexes. The first connection is retried with
    exponential backoff.

    Raises:
        RetryError: If the database stays unreachable
    """
    @exponential_backoff(
        max_retries=connect_retries,
        base_delay=base_delay,
        exceptions=(OperationalError,),
        on_retry=_log_retry,
    )
    def _connect() -> Engine:
        return init_database(database_url)

    engine = _connect()
    logger.info("Store ready", url=engine.url.render_as_string(hide_password=True))
    return JobSearchStore(engine)
