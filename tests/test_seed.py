"""
Tests for bulk loading and start-up seeding.
"""

import json
from datetime import datetime

import pytest

from jobsearch.database import GeoResult, JobResult, User
from jobsearch.errors import AlreadyExistsError, ReferentialWarning, ValidationError
from jobsearch.seed import bulk_load, coerce_document, load_seed_directory, parse_timestamp
from jobsearch.schema import EntityKind


def _count(store, model) -> int:
    with store.sessions() as session:
        return session.query(model).count()


class TestCoerceDocument:

    def test_mongo_export_shape(self):
        doc = coerce_document(EntityKind.GEO_RESULT, {
            "_id": {"$oid": "0123456789abcdef01234567"},
            "user_id": {"$oid": "76543210fedcba9876543210"},
            "zip": "94110",
            "radius": {"$numberInt": "10"},
            "created_at": {"$date": "2024-05-01T12:00:00"},
        })

        assert doc["id"] == "0123456789abcdef01234567"
        assert "_id" not in doc
        assert doc["user_id"] == "76543210fedcba9876543210"
        assert doc["radius"] == 10
        assert doc["created_at"] == datetime(2024, 5, 1, 12, 0)

    def test_generates_missing_id(self):
        doc = coerce_document(EntityKind.GEO_RESULT, {"zip": "94110"})
        assert len(doc["id"]) == 32

    def test_unparseable_timestamp_left_for_validation(self):
        doc = coerce_document(EntityKind.GEO_RESULT, {"created_at": "yesterday"})
        assert doc["created_at"] == "yesterday"

    def test_user_email_normalized(self):
        doc = coerce_document(EntityKind.USER, {"email": " Demo@Example.com"})
        assert doc["email"] == "demo@example.com"

    def test_non_object_rejected(self):
        with pytest.raises(ValidationError):
            coerce_document(EntityKind.JOB, ["not", "a", "document"])

    def test_canonical_extended_json_date(self):
        """{"$date": {"$numberLong": millis}} becomes a local datetime."""
        millis = 1714564800000
        doc = coerce_document(EntityKind.GEO_RESULT, {
            "radius": {"$numberLong": "10"},
            "created_at": {"$date": {"$numberLong": str(millis)}},
        })

        assert doc["created_at"] == datetime.fromtimestamp(millis / 1000)
        assert doc["radius"] == 10

    @pytest.mark.parametrize("wrapped, expected_type", [
        ({"$numberLong": None}, "64-bit integer"),
        ({"$numberLong": "ten"}, "64-bit integer"),
        ({"$numberInt": [1]}, "64-bit integer"),
        ({"$numberDouble": "north"}, "double"),
    ])
    def test_malformed_number_wrapper(self, wrapped, expected_type):
        with pytest.raises(ValidationError) as exc_info:
            coerce_document(EntityKind.GEO_RESULT, {"radius": wrapped})
        assert exc_info.value.field == "radius"
        assert exc_info.value.expected_type == expected_type

    def test_out_of_range_epoch_date(self):
        with pytest.raises(ValidationError) as exc_info:
            coerce_document(EntityKind.GEO_RESULT, {"created_at": {"$date": {"$numberLong": str(10 ** 20)}}})
        assert exc_info.value.field == "created_at"

    def test_parse_timestamp_with_zone(self):
        parsed = parse_timestamp("2024-05-01T12:00:00Z")
        assert parsed is not None
        assert parsed.tzinfo is None


class TestBulkLoad:

    def test_loads_batch(self, store, valid_geo_document):
        second = dict(valid_geo_document, zip="10001")
        with pytest.warns(ReferentialWarning):
            count = bulk_load(store, "geo_results", [valid_geo_document, second])

        assert count == 2
        assert _count(store, GeoResult) == 2

    def test_one_invalid_document_rejects_batch(self, store, alice, valid_geo_document):
        """A geo result missing zip keeps the whole batch out."""
        store.geo_results.record_geo_search(alice, "94110", 10)
        good = dict(valid_geo_document, user_id=alice)
        bad = dict(good)
        del bad["zip"]

        with pytest.raises(ValidationError) as exc_info:
            bulk_load(store, "geo_results", [good, good, bad])

        assert exc_info.value.field == "zip"
        assert _count(store, GeoResult) == 1

    def test_unique_violation_rolls_back_batch(self, store, alice):
        users = [
            {"username": "a", "email": "dup@example.com", "password_hash": "x", "created_at": "2024-05-01T00:00:00"},
            {"username": "b", "email": "fresh@example.com", "password_hash": "x", "created_at": "2024-05-01T00:00:00"},
            {"username": "c", "email": "DUP@example.com", "password_hash": "x", "created_at": "2024-05-01T00:00:00"},
        ]

        with pytest.raises(AlreadyExistsError):
            bulk_load(store, "users", users)

        assert _count(store, User) == 1  # only alice

    def test_malformed_number_wrapper_rejects_batch(self, store, alice):
        documents = [
            {"user_id": alice, "zip": "94110", "radius": 10, "created_at": "2024-05-01T12:00:00"},
            {"user_id": alice, "zip": "94110", "radius": {"$numberLong": "ten"}, "created_at": "2024-05-01T12:00:00"},
        ]

        with pytest.raises(ValidationError) as exc_info:
            bulk_load(store, "geo_results", documents)

        assert exc_info.value.field == "radius"
        assert _count(store, GeoResult) == 0

    def test_empty_batch(self, store):
        assert bulk_load(store, "jobs", []) == 0

    def test_unknown_collection(self, store):
        with pytest.raises(ValueError):
            bulk_load(store, "resumes", [{}])


class TestLoadSeedDirectory:

    def test_loads_seed_files(self, store, seed_dir):
        loaded = load_seed_directory(store, seed_dir)

        assert loaded == {"users": 1, "geo_results": 2, "job_results": 1}
        assert store.users.get_by_email("demo@example.com").id == "1" * 24
        assert len(store.geo_results.find_by_zip_radius("10001", 25)) == 1

    def test_missing_directory_is_not_an_error(self, store, tmp_path):
        assert load_seed_directory(store, tmp_path / "absent") == {}
        assert load_seed_directory(store, None) == {}

    def test_directory_without_seed_files(self, store, tmp_path):
        (tmp_path / "notes.txt").write_text("nothing here")
        assert load_seed_directory(store, tmp_path) == {}

    def test_bad_file_is_skipped(self, store, seed_dir):
        """An invalid geo_results.json does not stop the other files."""
        (seed_dir / "geo_results.json").write_text(json.dumps([
            {"user_id": "1" * 24, "zip": "94110", "radius": 10, "created_at": "2024-05-01T12:00:00"},
            {"user_id": "1" * 24, "radius": 10, "created_at": "2024-05-01T12:00:00"},
        ]))

        loaded = load_seed_directory(store, seed_dir)

        assert loaded == {"users": 1, "job_results": 1}
        assert _count(store, GeoResult) == 0
        assert _count(store, JobResult) == 1

    def test_null_number_wrapper_is_skipped(self, store, seed_dir):
        """A file with {"$numberLong": null} is skipped; start-up carries on."""
        (seed_dir / "geo_results.json").write_text(json.dumps([
            {"user_id": "1" * 24, "zip": "94110", "radius": {"$numberLong": None}, "created_at": "2024-05-01T12:00:00"},
        ]))

        loaded = load_seed_directory(store, seed_dir)

        assert loaded == {"users": 1, "job_results": 1}
        assert _count(store, GeoResult) == 0

    def test_malformed_json_is_skipped(self, store, seed_dir):
        (seed_dir / "results.json").write_text("{not json")

        loaded = load_seed_directory(store, seed_dir)

        assert "job_results" not in loaded
        assert loaded["geo_results"] == 2

    def test_empty_file(self, store, tmp_path):
        (tmp_path / "jobs.json").write_text("   ")
        assert load_seed_directory(store, tmp_path) == {"jobs": 0}

    def test_reloading_same_seed_fails_per_file(self, store, seed_dir):
        """Seed ids are fixed, so a second run is rejected file by file."""
        load_seed_directory(store, seed_dir)

        loaded = load_seed_directory(store, seed_dir)

        assert "users" not in loaded
        assert _count(store, User) == 1
