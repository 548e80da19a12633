"""
Error taxonomy for the consultation engine.

Two kinds of failure exist:

``ConfigurationError``
    The deployed tree definitions are broken (missing file, bad JSON, a step
    with no options, inconsistent lengths, unknown family). Raised once at
    registry load time and never per request. The CLI exits on it.

``NavigationError`` and subclasses
    Per-request state-policy violations. They are raised inside the
    navigator and the path store, then converted into typed results by
    ``ProgressService``; callers of the service never see them as
    exceptions. Each carries a stable ``ErrorCode``.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    """Machine-readable code attached to every per-request failure."""

    NOT_FOUND = "not_found"
    INVALID_OPTION = "invalid_option"
    ALREADY_COMPLETE = "already_complete"
    NOTHING_TO_REWIND = "nothing_to_rewind"
    STORE_CONFLICT = "store_conflict"


class AdvisorFlowError(Exception):
    """Base class for all advisor-flow errors."""


class ConfigurationError(AdvisorFlowError):
    """Tree definitions (or engine configuration) are malformed."""


class NavigationError(AdvisorFlowError):
    """A recoverable, per-request failure.

    Attributes:
        code:    Stable ``ErrorCode`` for the failure class.
        message: Human-readable explanation.
    """

    code: ErrorCode

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class AdvisorNotFound(NavigationError):
    """The advisor id has no registered decision tree."""

    code = ErrorCode.NOT_FOUND


class InvalidOption(NavigationError):
    """The option id does not belong to the current step."""

    code = ErrorCode.INVALID_OPTION


class AlreadyComplete(NavigationError):
    """``advance`` was called on a completed path."""

    code = ErrorCode.ALREADY_COMPLETE


class NothingToRewind(NavigationError):
    """``rewind`` was called on an empty path."""

    code = ErrorCode.NOTHING_TO_REWIND


class StoreConflict(NavigationError):
    """The stored path changed underneath this request (or is inconsistent).

    Recoverable by reloading the path and retrying the request.
    """

    code = ErrorCode.STORE_CONFLICT
