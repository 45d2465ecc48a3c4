"""Error taxonomy for the review pipeline.

Every error carries a ``user_message`` suitable for a non-blocking
notification. None of them is fatal: each is recovered from by retrying the
action or reloading the view.
"""

from __future__ import annotations


class ReviewPipelineError(Exception):
    """Base class for review pipeline failures."""

    default_message = "Something went wrong. Please try again."

    def __init__(self, message: str | None = None, status_code: int | None = None):
        self.user_message = message or self.default_message
        self.status_code = status_code
        super().__init__(self.user_message)


class AuthError(ReviewPipelineError):
    """Missing or expired credential."""

    default_message = "Session expired. Please log in again."


class ValidationError(ReviewPipelineError):
    """Client-detectable bad input, raised before any network call."""

    default_message = "Invalid input."


class NotFoundError(ReviewPipelineError):
    """Referenced run, reviewer or review item no longer exists."""

    default_message = "The requested record was not found."


class InvalidOperationError(ReviewPipelineError):
    """Operation is well-formed but not allowed in the current state."""

    default_message = "This action is not allowed."


class UpdateFailedError(ReviewPipelineError):
    """Backend rejected a mutation."""

    default_message = "Failed to save changes."


class FetchFailedError(ReviewPipelineError):
    """Backend failed to answer a read."""

    default_message = "Could not load data."


class NetworkError(ReviewPipelineError):
    """Transport failure talking to the payroll service."""

    default_message = "Network error. Please try again."
