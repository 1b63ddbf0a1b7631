"""
Typed failures raised by the registry store and the migration engine.

Every error carries a single human-readable message naming the operation
and the underlying cause, so callers can show it as-is.
"""
from typing import Optional


class RegistryError(Exception):
    """Base class for registry and migration failures."""

    def __init__(self, operation: str, cause: str):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause}")


class InvalidId(RegistryError):
    """Raised when a feature id (or file name) is empty or unusable."""


class DuplicateId(RegistryError):
    """A v2 entry with this id already exists. Recorded as a warning, not raised."""


class FeatureNotFound(RegistryError):
    """Raised when a feature's data.json is missing or unreadable."""


class CorruptRegistry(RegistryError):
    """Raised when features.json exists but is not a JSON array."""


class ProtectedFile(RegistryError):
    """Raised on an attempt to delete a data.json through delete_file."""


class CopyFailed(RegistryError):
    """Raised when a resource cannot be copied into a feature folder."""


class FileMissing(RegistryError):
    """Raised when the file targeted by delete_file does not exist."""


class PartialMigration(RegistryError):
    """
    Raised when features.json could not be rewritten after a conversion pass.

    Folders scaffolded and scripts moved before the failure stay in place;
    the attached report lists them. Re-running the conversion is safe.
    """

    def __init__(self, operation: str, cause: str, report: Optional[object] = None):
        super().__init__(operation, cause)
        self.report = report
