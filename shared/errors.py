"""
Exception hierarchy for the migration platform.

Connection-level failures abort an operation; parse failures are absorbed
record by record; sync cycle failures never leave the sync monitor.
"""


class MigrationPlatformError(Exception):
    """Base class for errors raised by this platform."""


class RepositoryConnectionError(MigrationPlatformError, ConnectionError):
    """Legacy repository unreachable, authentication refused, or command failed."""


class RepositoryTimeoutError(RepositoryConnectionError):
    """An adapter call exceeded its timeout."""


class RecordParseError(MigrationPlatformError):
    """One adapter output record could not be tokenized."""

    def __init__(self, message: str, raw: str = ""):
        super().__init__(message)
        self.raw = raw


class NotFoundError(MigrationPlatformError):
    """Unknown connection, project, object or issue id."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class ValidationError(MigrationPlatformError):
    """Malformed input to a create or update call."""


class SyncCycleError(MigrationPlatformError):
    """One sync polling cycle failed; recorded in SyncStatus, never raised to callers."""
