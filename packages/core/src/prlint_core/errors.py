"""Failure kinds for a single lint-review event.

Every one of these is fatal for the event that raised it. The pipeline raises
them before any review is posted, so a pull request sees either a complete
review or nothing at all. Reporting happens on the operator side (logs, CLI
output, webhook response), never on the pull request.
"""

from __future__ import annotations


class PrlintError(Exception):
    """Base class for errors that abort a lint-review event."""


class DiffUnavailable(PrlintError):
    """Raised when the base or head revision cannot be resolved."""


class LinterInvocationFailed(PrlintError):
    """Raised when ESLint exits badly or its output does not match the expected schema."""

    def __init__(self, message: str, stderr: str = ""):
        super().__init__(message)
        self.stderr = stderr


class ApiUnavailable(PrlintError):
    """Raised when a GitHub metadata or posting call fails."""
