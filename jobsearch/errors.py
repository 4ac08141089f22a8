"""
Error types raised by the store.

Repositories translate database integrity errors into these so callers
never have to know about the storage engine.
"""


class JobSearchError(Exception):
    """Base class for all store errors."""
    pass


class ValidationError(JobSearchError):
    """A document is missing a required field or a field has the wrong type."""

    def __init__(self, kind: str, field: str, expected_type: str, reason: str = "type"):
        self.kind = kind
        self.field = field
        self.expected_type = expected_type
        self.reason = reason
        if reason == "missing":
            message = f"{kind}: missing required field '{field}' ({expected_type})"
        else:
            message = f"{kind}: field '{field}' must be {expected_type}"
        super().__init__(message)


class AlreadyExistsError(JobSearchError):
    """An insert collided with a unique index."""

    def __init__(self, collection: str, key):
        self.collection = collection
        self.key = key
        super().__init__(f"{collection}: {key} already exists")


class DuplicateEmailError(AlreadyExistsError):
    """A user with this email is already registered."""

    def __init__(self, email: str):
        self.email = email
        super().__init__("users", f"email {email!r}")


class NotFoundError(JobSearchError):
    """A lookup or delete matched nothing."""

    def __init__(self, collection: str, key):
        self.collection = collection
        self.key = key
        super().__init__(f"{collection}: {key} not found")


class ReferentialWarning(UserWarning):
    """A written document points at a parent that does not exist.

    Parents are not enforced, so this is emitted with warnings.warn and
    logged instead of raised.
    """

    def __init__(self, collection: str, field: str, missing):
        self.collection = collection
        self.field = field
        self.missing = sorted(missing)
        super().__init__(
            f"{collection}.{field} references missing document(s): {', '.join(self.missing)}"
        )
