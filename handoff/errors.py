"""
handoff errors.

Only ConfigError, StorageError and EmptyReport end an invocation.
Everything else is recovered where it is raised or downgraded to a
warning.
"""


class HandoffError(Exception):
    """Base class for all handoff errors."""


class ConfigError(HandoffError):
    """Raised when there's a configuration error (missing or invalid root)."""


class InvalidCategory(HandoffError, ValueError):
    """Raised when an unknown category string reaches the store."""


class ArtifactNotFound(HandoffError):
    """Raised when an artifact disappeared between list and read."""

    def __init__(self, category: str, artifact_id: str):
        super().__init__(f"{category} artifact not found: {artifact_id}")
        self.category = category
        self.artifact_id = artifact_id


class WriteCollision(HandoffError):
    """Raised when an exclusive create finds the id already taken."""

    def __init__(self, category: str, artifact_id: str):
        super().__init__(f"{category} artifact already exists: {artifact_id}")
        self.category = category
        self.artifact_id = artifact_id


class StorageError(HandoffError):
    """Raised when the store cannot persist an artifact."""


class ArtifactUnreadable(HandoffError):
    """Raised when an artifact exists but its bytes cannot be read as text."""

    def __init__(self, category: str, artifact_id: str, reason: str):
        super().__init__(f"{category} artifact {artifact_id} is unreadable: {reason}")
        self.category = category
        self.artifact_id = artifact_id
        self.reason = reason


class EmptyReport(HandoffError, ValueError):
    """Raised when a report is recorded without a body."""
