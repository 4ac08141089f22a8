"""
Pytest configuration and shared fixtures.
"""

import json
from pathlib import Path
from typing import Any, Dict

import pytest

from jobsearch.database import init_database
from jobsearch.store import JobSearchStore


@pytest.fixture
def db_url(tmp_path) -> str:
    """URL of a fresh SQLite file under tmp_path."""
    return f"sqlite:///{tmp_path / 'test.db'}"


@pytest.fixture
def store(db_url):
    """Initialized store; disposed after the test."""
    s = JobSearchStore(init_database(db_url))
    yield s
    s.close()


@pytest.fixture
def alice(store) -> str:
    return store.users.create_user("alice", "alice@example.com", "hash-alice")


@pytest.fixture
def bob(store) -> str:
    return store.users.create_user("bob", "bob@example.com", "hash-bob")


@pytest.fixture
def geo_result(store, alice) -> str:
    return store.geo_results.record_geo_search(alice, "94110", 10)


@pytest.fixture
def business(store, geo_result) -> str:
    return store.businesses.add_business(
        geo_result,
        "Acme Corp",
        "1 Market St, San Francisco, CA",
        "https://acme.example.com/",
        37.7599,
        -122.4148,
    )


@pytest.fixture
def job(store, business) -> str:
    return store.jobs.add_job(
        business,
        "Backend Engineer",
        "Build and run our APIs.",
        "https://acme.example.com/careers/backend-engineer",
    )


@pytest.fixture
def valid_geo_document() -> Dict[str, Any]:
    """Geo result as an ingestion pipeline would hand it over."""
    return {
        "user_id": "a" * 32,
        "zip": "94110",
        "radius": 10,
        "created_at": "2024-05-01T12:00:00",
    }


@pytest.fixture
def seed_dir(tmp_path) -> Path:
    """Seed directory with a user, two geo results and a legacy results.json."""
    directory = tmp_path / "seed"
    directory.mkdir()
    user_id = "1" * 24
    (directory / "users.json").write_text(json.dumps([
        {
            "_id": {"$oid": user_id},
            "username": "demo",
            "email": "Demo@Example.com",
            "password_hash": "x",
            "created_at": {"$date": "2024-05-01T12:00:00Z"},
        }
    ]))
    (directory / "geo_results.json").write_text(json.dumps([
        {"user_id": {"$oid": user_id}, "zip": "94110", "radius": 10, "created_at": "2024-05-01T12:00:00"},
        {"user_id": {"$oid": user_id}, "zip": "10001", "radius": 25, "created_at": "2024-05-02T09:30:00"},
    ]))
    (directory / "results.json").write_text(json.dumps([
        {"user_id": {"$oid": user_id}, "jobs": [], "query_title": "engineer", "created_at": "2024-05-01T12:05:00"},
    ]))
    return directory
