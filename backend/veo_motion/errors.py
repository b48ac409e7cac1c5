"""
Generation error types.

All pipeline errors inherit from GenerationError so the workflow can catch
them at a single boundary. Each carries a message fit for display.
"""

from __future__ import annotations

import enum


class GenerationError(Exception):
    """Base exception for all generation workflow failures."""
    pass


class CredentialErrorKind(str, enum.Enum):
    HOST_UNAVAILABLE = "host_unavailable"
    USER_CANCELLED = "user_cancelled"
    MISSING = "missing"


class CredentialError(GenerationError):
    """Raised when no usable credential can be obtained from the host.

    Non-fatal: the workflow stays Idle and shows the message as a notice.
    """

    def __init__(self, kind: CredentialErrorKind, message: str):
        self.kind = kind
        super().__init__(message)


class SubmissionError(GenerationError):
    """Raised when the generation job could not be submitted."""
    pass


class PollErrorKind(str, enum.Enum):
    TIMED_OUT = "timed_out"
    CANCELLED = "cancelled"
    TRANSPORT = "transport"


class PollError(GenerationError):
    """Raised when polling stops before the operation reaches a terminal state."""

    def __init__(self, kind: PollErrorKind, message: str):
        self.kind = kind
        super().__init__(message)


class RetrievalErrorKind(str, enum.Enum):
    REMOTE_GENERATION_FAILED = "remote_generation_failed"
    MISSING_ARTIFACT = "missing_artifact"
    DOWNLOAD_FAILED = "download_failed"


class RetrievalError(GenerationError):
    """Raised when a terminal operation does not yield a downloadable video."""

    def __init__(self, kind: RetrievalErrorKind, message: str, status: int | None = None):
        self.kind = kind
        self.status = status
        super().__init__(message)


class InvalidStateTransitionError(GenerationError):
    """Raised when an action is not allowed in the current workflow state."""

    def __init__(self, current_state: str, action: str):
        self.current_state = current_state
        self.action = action
        super().__init__(f"Cannot {action} while workflow is {current_state}")
