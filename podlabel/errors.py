"""
Error taxonomy for the podlabel pipeline.

Only ConfigError is fatal to a run. Every other error is raised inside a stage
transform, caught by the StageRunner, written to the stage's failure log and the
batch moves on to the next item.
"""

from typing import Any, Optional, Sequence


class PodlabelError(Exception):
    """Base class for all pipeline errors."""


class ConfigError(PodlabelError):
    """Missing or invalid configuration (credentials, database URL, ...)."""

    def __init__(self, errors: Sequence[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors) or "Invalid configuration")


class NetworkError(PodlabelError):
    """A remote call (search, audio fetch, diarization, language model) failed."""


class ValidationError(PodlabelError):
    """Externally sourced JSON failed schema validation.

    Attributes:
        issues: Structured list of ValidationIssue objects.
        source: Optional description of what was validated (usually a file name).
    """

    def __init__(self, issues: Sequence[Any], source: Optional[str] = None):
        self.issues = list(issues)
        self.source = source
        prefix = f"Invalid data in {source}" if source else "Invalid data"
        super().__init__(f"{prefix}: {len(self.issues)} issue(s)")


class ArtifactNotFound(PodlabelError):
    """The requested artifact does not exist on disk."""


class CorruptArtifact(PodlabelError):
    """An artifact exists on disk but cannot be parsed."""

    def __init__(self, path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Corrupt artifact {path}: {reason}")


class StageError(PodlabelError):
    """A single work item failed inside a stage.

    Wraps the original exception so callers can inspect it without the runner
    having to re-raise.
    """

    def __init__(self, stage: str, identifier: str, cause: BaseException):
        self.stage = stage
        self.identifier = identifier
        self.cause = cause
        super().__init__(f"[{stage}] {identifier}: {type(cause).__name__}: {cause}")


class SkipItem(PodlabelError):
    """Raised by a stage when an item needs no work (already fetched, already stored)."""
