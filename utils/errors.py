"""
utils/errors.py
---------------
Exception hierarchy shared by the model, database and repository layers.

"Not found" is deliberately absent: lookups return None and deletes
return False, so callers can tell a missing record from a failure.
"""

from typing import Optional


class LabStorageError(Exception):
    """Base class for every error raised by the storage core."""


class ValidationError(LabStorageError):
    """An insert or patch shape is malformed. Raised before any storage mutation."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class ReferentialIntegrityError(LabStorageError):
    """A record declares a parent that does not exist."""

    def __init__(self, entity: str, entity_id: int):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} #{entity_id} does not exist")


class DuplicateError(LabStorageError):
    """A unique key (username, collaborator pair) is already taken."""

    def __init__(self, entity: str, key: str):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} already exists: {key}")


class StorageUnavailable(LabStorageError):
    """The durable store cannot be reached. Never retried by this layer."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.cause = cause
        super().__init__(message)
