"""
Tests for database.py - tables, indexes and the insert-time schema check.
"""

from datetime import datetime

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError

from jobsearch.database import GeoResult, User, get_session, init_database
from jobsearch.errors import ValidationError

COLLECTIONS = {
    "users",
    "geo_results",
    "businesses",
    "jobs",
    "job_results",
    "starred_jobs",
    "applied_jobs",
}


def _indexes(engine, table):
    return {ix["name"]: ix for ix in inspect(engine).get_indexes(table)}


class TestDatabaseInit:
    """Test database initialization."""

    def test_init_creates_database_file(self, tmp_path):
        db_path = tmp_path / "test.db"
        assert not db_path.exists()

        init_database(f"sqlite:///{db_path}")

        assert db_path.exists()

    def test_init_creates_parent_directories(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "test.db"
        assert not db_path.parent.exists()

        init_database(f"sqlite:///{db_path}")

        assert db_path.exists()

    def test_init_creates_all_collections(self, db_url):
        engine = init_database(db_url)
        assert set(inspect(engine).get_table_names()) == COLLECTIONS

    def test_init_is_idempotent(self, db_url):
        init_database(db_url)
        engine = init_database(db_url)
        assert set(inspect(engine).get_table_names()) == COLLECTIONS

    def test_unique_indexes(self, db_url):
        engine = init_database(db_url)

        assert _indexes(engine, "users")["ux_users_email"]["unique"]
        for table in ("starred_jobs", "applied_jobs"):
            index = _indexes(engine, table)[f"ux_{table}_user_job"]
            assert index["unique"]
            assert index["column_names"] == ["user_id", "job_id"]

    def test_lookup_indexes(self, db_url):
        engine = init_database(db_url)

        geo = _indexes(engine, "geo_results")
        assert geo["ix_geo_results_zip_radius"]["column_names"] == ["zip", "radius"]
        assert "ix_geo_results_user_id" in geo
        assert {"ix_businesses_name", "ix_businesses_geo_result_id"} <= set(_indexes(engine, "businesses"))
        assert {"ix_jobs_title", "ix_jobs_business_id"} <= set(_indexes(engine, "jobs"))
        assert {"ix_job_results_user_id", "ix_job_results_query_title"} <= set(_indexes(engine, "job_results"))


class TestInsertValidation:
    """Direct ORM inserts go through the schema registry too."""

    @pytest.fixture
    def db_session(self, db_url):
        session = get_session(init_database(db_url))
        yield session
        session.close()

    def test_valid_insert(self, db_session):
        db_session.add(GeoResult(
            id="a" * 32,
            user_id="b" * 32,
            zip="94110",
            radius=10,
            created_at=datetime.now(),
        ))
        db_session.commit()

        assert db_session.query(GeoResult).count() == 1

    def test_missing_field_rejected(self, db_session):
        db_session.add(GeoResult(id="a" * 32, user_id="b" * 32, radius=10, created_at=datetime.now()))

        with pytest.raises(ValidationError) as exc_info:
            db_session.commit()
        assert exc_info.value.field == "zip"

    def test_wrong_type_rejected(self, db_session):
        db_session.add(GeoResult(
            id="a" * 32,
            user_id="b" * 32,
            zip="94110",
            radius="10 miles",
            created_at=datetime.now(),
        ))

        with pytest.raises(ValidationError):
            db_session.commit()

    def test_duplicate_email_rejected_by_index(self, db_session):
        for i, user_id in enumerate(("a" * 32, "b" * 32)):
            db_session.add(User(
                id=user_id,
                username=f"user{i}",
                email="same@example.com",
                password_hash="x",
                created_at=datetime.now(),
            ))

        with pytest.raises(IntegrityError):
            db_session.commit()
