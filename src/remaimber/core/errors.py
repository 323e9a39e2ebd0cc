"""Error taxonomy shared by the core components.

ValidationError, ConflictError and NotFoundError are raised synchronously
to the caller. GradeError never reaches a caller: the orchestrator turns it
into a failed grade record.
"""

from __future__ import annotations


class RemaimberError(Exception):
    """Base class for all domain errors."""

    pass


class ValidationError(RemaimberError):
    """Bad input while building a session (empty bank, no matching ids)."""

    pass


class ConflictError(RemaimberError):
    """Operation not allowed in the current session state."""

    pass


class NotFoundError(RemaimberError):
    """Unknown session, bank or question id."""

    pass


class GradeError(RemaimberError):
    """The grading oracle could not produce a usable result."""

    def __init__(self, reason: str, cause: BaseException | None = None):
        self.reason = reason
        self.cause = cause
        super().__init__(str(self))

    @property
    def detail(self) -> str:
        if self.cause is not None:
            return f"{self.reason}: {self.cause}"
        return self.reason

    def __str__(self) -> str:
        return f"grading failed: {self.detail}"
