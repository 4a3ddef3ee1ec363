"""
deckgen exception classes and error classification tags
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    """Classification tag that drives retry and propagation policy"""
    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    TRANSIENT = "transient"
    CONTENT_FILTERED = "content_filtered"
    INSUFFICIENT_CONTENT = "insufficient_content"
    CONTENT_TOO_LARGE = "content_too_large"
    FATAL = "fatal"
    CANCELLED = "cancelled"

    @property
    def is_retryable(self) -> bool:
        return self in (ErrorKind.TRANSIENT, ErrorKind.RATE_LIMITED)


class DeckGenException(Exception):
    """Base exception for all deckgen exceptions"""

    kind: ErrorKind = ErrorKind.FATAL

    def __init__(self, message: str = "", kind: Optional[ErrorKind] = None):
        super().__init__(message)
        if kind is not None:
            self.kind = kind


class ConfigurationError(DeckGenException):
    """Raised when a required setting or collaborator is missing"""
    pass


class ValidationError(DeckGenException):
    """Raised when input fails local validation"""
    pass


class InsufficientContentError(ValidationError):
    """Raised when the document text is too short to analyze"""

    kind = ErrorKind.INSUFFICIENT_CONTENT


class ContentTooLargeError(ValidationError):
    """Raised when the document text exceeds the analysis limit"""

    kind = ErrorKind.CONTENT_TOO_LARGE


class GenerationError(DeckGenException):
    """Raised when a call to the remote generation service fails"""
    pass


class ContentFilteredError(GenerationError):
    """Raised when the remote service refuses the content"""

    kind = ErrorKind.CONTENT_FILTERED


class GenerationCancelledError(DeckGenException):
    """Raised when a generation run is cancelled"""

    kind = ErrorKind.CANCELLED


class StageFailedError(DeckGenException):
    """Raised when a pipeline stage fails; carries the work that did succeed"""

    def __init__(self, stage: Any, kind: ErrorKind, partial: Optional[Dict[int, Any]] = None,
                 cause: Optional[BaseException] = None):
        message = f"Stage {getattr(stage, 'value', stage)} failed ({kind.value})"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message, kind=kind)
        self.stage = stage
        self.partial = dict(partial or {})
        self.cause = cause


class ResourceNotFoundError(DeckGenException):
    """Raised when a requested resource is not found"""
    pass


class ProjectNotFoundError(ResourceNotFoundError):
    """Raised when no stored project has the requested id"""

    def __init__(self, project_id: str):
        super().__init__(f"Project with ID {project_id} not found")
        self.project_id = project_id


class ProjectStorageError(DeckGenException):
    """Raised when a project cannot be read from or written to disk"""
    pass


class ImageProcessingError(DeckGenException):
    """Raised when there is an error processing an image"""
    pass


class RunInProgressError(DeckGenException):
    """Raised when a project already has an active generation run"""

    def __init__(self, project_id: str):
        super().__init__(f"A generation run is already active for project {project_id}")
        self.project_id = project_id
