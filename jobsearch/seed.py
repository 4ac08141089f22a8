"""
Bulk and seed loading.

bulk_load() takes pre-formed documents (e.g. from the ingestion pipeline or
a Mongo export) and inserts them all or none. load_seed_directory() is the
start-up seeding: missing seed data is fine, and a broken seed file is
logged and skipped without stopping start-up.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .errors import JobSearchError, ValidationError
from .logger import get_logger
from .normalize import normalize_email
from .repositories.base import insert_documents, new_id
from .schema import EntityKind, timestamp_fields

logger = get_logger()

# Parents before children so reference checks see the parents
SEED_ORDER = [
    EntityKind.USER,
    EntityKind.GEO_RESULT,
    EntityKind.BUSINESS,
    EntityKind.JOB,
    EntityKind.JOB_RESULT,
    EntityKind.STARRED_JOB,
    EntityKind.APPLIED_JOB,
]

SEED_ALIASES = {
    EntityKind.JOB_RESULT: ["results.json"],
}


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 string into a naive local datetime; None if unparseable."""
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def _number(kind: EntityKind, field: str, raw: Any, convert, expected_type: str):
    try:
        return convert(raw)
    except (TypeError, ValueError, OverflowError) as e:
        raise ValidationError(kind.value, field, expected_type) from e


def _epoch_millis(kind: EntityKind, field: str, millis: int) -> datetime:
    try:
        return datetime.fromtimestamp(millis / 1000)
    except (OverflowError, OSError, ValueError) as e:
        raise ValidationError(kind.value, field, "timestamp") from e


def _unwrap(kind: EntityKind, field: str, value: Any) -> Any:
    """Strip Mongo extended JSON wrappers ($oid, $date, $numberLong, ...)."""
    if isinstance(value, dict) and len(value) == 1:
        key, inner = next(iter(value.items()))
        if key == "$oid":
            return inner
        if key == "$date":
            inner = _unwrap(kind, field, inner)
            if isinstance(inner, int) and not isinstance(inner, bool):
                return _epoch_millis(kind, field, inner)
            return inner
        if key in ("$numberLong", "$numberInt"):
            return _number(kind, field, inner, int, "64-bit integer")
        if key == "$numberDouble":
            return _number(kind, field, inner, float, "double")
    if isinstance(value, list):
        return [_unwrap(kind, field, v) for v in value]
    return value


def coerce_document(kind: EntityKind, document: Any) -> Dict[str, Any]:
    """
    Bring an imported document into the shape the schema registry expects.

    Maps _id to id (generating one if absent), unwraps extended JSON and
    parses ISO timestamps. Everything else is left for validation to judge.
    """
    if not isinstance(document, dict):
        raise ValidationError(kind.value, "<document>", "object")

    doc = {key: _unwrap(kind, key, value) for key, value in document.items()}
    if "_id" in doc:
        mongo_id = doc.pop("_id")
        doc.setdefault("id", mongo_id)
    if doc.get("id") is None:
        doc["id"] = new_id()

    for field in timestamp_fields(kind):
        value = doc.get(field)
        if isinstance(value, str):
            parsed = parse_timestamp(value)
            if parsed is not None:
                doc[field] = parsed

    if kind is EntityKind.USER and isinstance(doc.get("email"), str):
        doc["email"] = normalize_email(doc["email"])
    return doc


def bulk_load(store, collection: str, documents: Iterable[Any]) -> int:
    """
    Insert a batch of documents into one collection.

    Every document is validated before anything is written; one bad
    document rejects the batch. The insert itself is one transaction.

    Args:
        store: JobSearchStore
        collection: Collection name, e.g. "geo_results"
        documents: Pre-formed documents

    Returns:
        Number of documents inserted

    Raises:
        ValueError: Unknown collection
        ValidationError: A document failed validation (nothing written)
        AlreadyExistsError: A unique index rejected the batch (nothing written)
    """
    kind = EntityKind(collection)
    try:
        prepared = [coerce_document(kind, d) for d in documents]
    except ValidationError:
        logger.record_validation_failure(kind.value)
        raise
    ids = insert_documents(store.sessions, kind, prepared)
    logger.info("Bulk load complete", collection=kind.value, count=len(ids))
    return len(ids)


def seed_files(seed_dir: Path) -> List[Tuple[EntityKind, Path]]:
    """Seed files present in a directory, parents first."""
    found = []
    for kind in SEED_ORDER:
        for name in [f"{kind.value}.json"] + SEED_ALIASES.get(kind, []):
            path = seed_dir / name
            if path.is_file():
                found.append((kind, path))
    return found


def _read_documents(path: Path) -> List[Any]:
    with path.open("r", encoding="utf-8") as f:
        content = f.read().strip()
    if not content:
        return []
    data = json.loads(content)
    return data if isinstance(data, list) else [data]


def load_seed_directory(store, seed_dir: Optional[Path]) -> Dict[str, int]:
    """
    Load every seed file found in seed_dir.

    A failing file is logged and skipped; the others still load.

    Returns:
        Inserted document count per collection (loaded files only)
    """
    loaded: Dict[str, int] = {}
    if seed_dir is None or not seed_dir.is_dir():
        logger.info("No seed data found", seed_dir=str(seed_dir) if seed_dir else None)
        return loaded

    files = seed_files(seed_dir)
    if not files:
        logger.info("No seed data found", seed_dir=str(seed_dir))
        return loaded

    for kind, path in files:
        try:
            documents = _read_documents(path)
            count = bulk_load(store, kind.value, documents)
        except (JobSearchError, OSError, ValueError) as e:
            logger.error("Seed file skipped", file=str(path), collection=kind.value, error=str(e))
            continue
        loaded[kind.value] = loaded.get(kind.value, 0) + count

    logger.info("Seed data loaded", collections=loaded)
    return loaded
