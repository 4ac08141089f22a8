"""
Repository base.

Responsibilities:
- Validate documents through the schema registry before any write.
- Report missing parent documents as ReferentialWarning.
- Perform each write as one transaction.
- Translate integrity errors into store errors.

Non-Responsibilities:
- No query logic specific to one collection.

Invariant:
A write either lands completely or not at all.
"""

import uuid
import warnings
from datetime import datetime
from typing import Any, Dict, List, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from ..database import MODELS
from ..errors import AlreadyExistsError, ReferentialWarning, ValidationError
from ..logger import get_logger
from ..schema import EntityKind, reference_fields, validate

logger = get_logger()


def new_id() -> str:
    return uuid.uuid4().hex


def now() -> datetime:
    return datetime.now()


def validate_all(kind: EntityKind, documents: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Validate every document, stopping at the first failure."""
    validated = []
    for index, document in enumerate(documents):
        try:
            validated.append(validate(kind, document))
        except ValidationError as e:
            logger.record_validation_failure(kind.value)
            logger.warning("Document rejected by schema", collection=kind.value, index=index, error=str(e))
            raise
    return validated


def check_references(sessions, kind: EntityKind, documents: Sequence[Dict[str, Any]]) -> List[ReferentialWarning]:
    """
    Look up every parent the documents point at.

    Missing parents are logged and emitted as ReferentialWarning; the write
    still goes ahead.
    """
    found_warnings = []
    with sessions() as session:
        for field in reference_fields(kind):
            ids = set()
            for document in documents:
                value = document.get(field.name)
                if isinstance(value, list):
                    ids.update(value)
                elif value:
                    ids.add(value)
            if not ids:
                continue
            parent = MODELS[field.ref]
            existing = set(session.scalars(select(parent.id).where(parent.id.in_(ids))))
            missing = ids - existing
            if missing:
                warning = ReferentialWarning(kind.value, field.name, missing)
                logger.record_referential_warning(kind.value)
                logger.warning("Dangling reference", collection=kind.value, field=field.name, missing=sorted(missing))
                warnings.warn(warning, stacklevel=4)
                found_warnings.append(warning)
    return found_warnings


def insert_documents(sessions, kind: EntityKind, documents: Sequence[Dict[str, Any]]) -> List[str]:
    """
    Validate and insert documents of one collection in a single transaction.

    Raises:
        ValidationError: Before anything is written, if any document is invalid
        AlreadyExistsError: If a unique index rejects the batch (nothing written)
    """
    validated = validate_all(kind, documents)
    if not validated:
        return []
    check_references(sessions, kind, validated)

    model = MODELS[kind]
    try:
        with sessions.begin() as session:
            session.add_all([model(**doc) for doc in validated])
    except IntegrityError as e:
        logger.record_duplicate(kind.value)
        logger.warning("Insert rejected by unique index", collection=kind.value, count=len(validated))
        raise AlreadyExistsError(kind.value, "batch") from e

    logger.record_write(kind.value, len(validated))
    return [doc["id"] for doc in validated]


class Repository:
    """Shared plumbing for one collection."""

    kind: EntityKind

    def __init__(self, store):
        self._store = store
        self._sessions = store.sessions

    @property
    def model(self):
        return MODELS[self.kind]

    def _conflict(self, document: Dict[str, Any]) -> AlreadyExistsError:
        return AlreadyExistsError(self.kind.value, document.get("id"))

    def _insert(self, document: Dict[str, Any]) -> str:
        """Insert one document; the unique index check and the write are the same statement."""
        document.setdefault("id", new_id())
        validated = validate_all(self.kind, [document])[0]
        check_references(self._sessions, self.kind, [validated])

        try:
            with self._sessions.begin() as session:
                session.add(self.model(**validated))
        except IntegrityError as e:
            logger.record_duplicate(self.kind.value)
            raise self._conflict(validated) from e

        logger.record_write(self.kind.value)
        logger.debug("Inserted document", collection=self.kind.value, id=validated["id"])
        return validated["id"]

    def _insert_many(self, documents: Sequence[Dict[str, Any]]) -> List[str]:
        documents = [{"id": new_id(), **document} for document in documents]
        return insert_documents(self._sessions, self.kind, documents)

    def _get(self, row_id: str):
        with self._sessions() as session:
            return session.get(self.model, row_id)
