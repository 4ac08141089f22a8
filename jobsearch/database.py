"""
Database schema and connection management.

One SQLAlchemy model per collection. Tables, indexes and the insert-time
schema check are all declared here, so init_database() is the whole
bootstrap of an empty store.
"""

from pathlib import Path
from typing import Any, Dict

from sqlalchemy import (
    JSON,
    BigInteger,
    Column,
    DateTime,
    Float,
    Index,
    String,
    create_engine,
    event,
    inspect as sa_inspect,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .schema import EntityKind, validate

Base = declarative_base()

ID_LENGTH = 32


class User(Base):
    """Registered user."""

    __tablename__ = "users"
    __kind__ = EntityKind.USER
    __table_args__ = (Index("ux_users_email", "email", unique=True),)

    id = Column(String(ID_LENGTH), primary_key=True)
    username = Column(String, nullable=False)
    email = Column(String, nullable=False)  # stored normalized
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False)


class GeoResult(Base):
    """One geo search (zip + radius) run by a user."""

    __tablename__ = "geo_results"
    __kind__ = EntityKind.GEO_RESULT
    __table_args__ = (
        Index("ix_geo_results_zip_radius", "zip", "radius"),
        Index("ix_geo_results_user_id", "user_id"),
    )

    id = Column(String(ID_LENGTH), primary_key=True)
    user_id = Column(String(ID_LENGTH), nullable=False)
    zip = Column(String, nullable=False)
    radius = Column(BigInteger, nullable=False)
    created_at = Column(DateTime, nullable=False)


class Business(Base):
    """Business discovered inside a geo search."""

    __tablename__ = "businesses"
    __kind__ = EntityKind.BUSINESS
    __table_args__ = (
        Index("ix_businesses_name", "name"),
        Index("ix_businesses_geo_result_id", "geo_result_id"),
    )

    id = Column(String(ID_LENGTH), primary_key=True)
    geo_result_id = Column(String(ID_LENGTH), nullable=False)
    name = Column(String, nullable=False)
    address = Column(String, nullable=False)
    url = Column(String, nullable=False)
    lat = Column(Float, nullable=False)
    lon = Column(Float, nullable=False)


class Job(Base):
    """Job posting found on a business site."""

    __tablename__ = "jobs"
    __kind__ = EntityKind.JOB
    __table_args__ = (
        Index("ix_jobs_title", "title"),
        Index("ix_jobs_business_id", "business_id"),
    )

    id = Column(String(ID_LENGTH), primary_key=True)
    business_id = Column(String(ID_LENGTH), nullable=False)
    title = Column(String, nullable=False)
    description = Column(String, nullable=False)
    url = Column(String, nullable=False)
    posted_at = Column(DateTime, nullable=True)


class JobResult(Base):
    """Ordered snapshot of the jobs one title query returned for a user."""

    __tablename__ = "job_results"
    __kind__ = EntityKind.JOB_RESULT
    __table_args__ = (
        Index("ix_job_results_user_id", "user_id"),
        Index("ix_job_results_query_title", "query_title"),
    )

    id = Column(String(ID_LENGTH), primary_key=True)
    user_id = Column(String(ID_LENGTH), nullable=False)
    jobs = Column(JSON, nullable=False)  # list of job ids, order preserved
    query_title = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False)


class StarredJob(Base):
    __tablename__ = "starred_jobs"
    __kind__ = EntityKind.STARRED_JOB
    __table_args__ = (Index("ux_starred_jobs_user_job", "user_id", "job_id", unique=True),)

    id = Column(String(ID_LENGTH), primary_key=True)
    user_id = Column(String(ID_LENGTH), nullable=False)
    job_id = Column(String(ID_LENGTH), nullable=False)
    timestamp = Column(DateTime, nullable=False)


class AppliedJob(Base):
    __tablename__ = "applied_jobs"
    __kind__ = EntityKind.APPLIED_JOB
    __table_args__ = (Index("ux_applied_jobs_user_job", "user_id", "job_id", unique=True),)

    id = Column(String(ID_LENGTH), primary_key=True)
    user_id = Column(String(ID_LENGTH), nullable=False)
    job_id = Column(String(ID_LENGTH), nullable=False)
    timestamp = Column(DateTime, nullable=False)


MODELS = {
    model.__kind__: model
    for model in (User, GeoResult, Business, Job, JobResult, StarredJob, AppliedJob)
}


def to_document(obj) -> Dict[str, Any]:
    """Column values of a model instance as a plain dict."""
    return {attr.key: getattr(obj, attr.key) for attr in sa_inspect(obj).mapper.column_attrs}


@event.listens_for(Base, "before_insert", propagate=True)
def _validate_before_insert(mapper, connection, target):
    # Engine-level guard: no insert path bypasses the schema registry.
    validate(target.__kind__, to_document(target))


def _set_sqlite_pragma(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA journal_mode=WAL;")
        cursor.execute("PRAGMA busy_timeout = 15000")
        cursor.execute("PRAGMA synchronous=NORMAL;")
    finally:
        cursor.close()


def create_store_engine(database_url: str) -> Engine:
    """
    Create an engine for a database URL.

    SQLite files get their parent directory created, WAL journaling and a
    busy timeout so concurrent writers wait for each other.
    """
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(database_url, pool_pre_ping=True)

    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False, "timeout": 15},
    )
    event.listen(engine, "connect", _set_sqlite_pragma)
    return engine


def init_database(database_url: str) -> Engine:
    """
    Initialize database: create every collection table and its indexes.

    Safe to run on an already initialized database.

    Args:
        database_url: SQLAlchemy database URL

    Returns:
        The engine bound to the database
    """
    engine = create_store_engine(database_url)
    Base.metadata.create_all(engine)
    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    # Returned rows stay readable after their session closes.
    return sessionmaker(bind=engine, expire_on_commit=False)


def get_session(engine: Engine) -> Session:
    """
    Get database session.

    Args:
        engine: Engine returned by init_database

    Returns:
        SQLAlchemy session
    """
    return make_session_factory(engine)()
