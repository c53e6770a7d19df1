from __future__ import annotations

from typing import List, Optional

AUTH_EXPIRED_MESSAGE = "Login expired. Login again"


class WorkoutPlannerError(Exception):
    """Base class for every error surfaced to users of the planner."""

    default_message = "Unexpected error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class RemoteUnavailable(WorkoutPlannerError):
    """The Google client runtime or the Sheets API surface failed to load."""

    default_message = "The Google Sheets API is not available"


class AuthExpired(WorkoutPlannerError):
    default_message = AUTH_EXPIRED_MESSAGE


class SchemaInvalid(WorkoutPlannerError):
    """The spreadsheet does not match the structural contract.

    Carries every violation, in the order they were found.
    """

    default_message = "Spreadsheet validation failed"

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(format_validation_errors(self.errors) or None)


class NoData(WorkoutPlannerError):
    default_message = "No data found in sheet."


class WriteFailed(WorkoutPlannerError):
    default_message = "Failed to save note"


def format_validation_errors(errors: List[str]) -> str:
    """Render validation errors as one user-facing message."""
    if not errors:
        return ""

    # An expired login is not a schema problem, show it as-is
    if len(errors) == 1 and errors[0] == AUTH_EXPIRED_MESSAGE:
        return errors[0]

    bullets = "\n".join(f"• {err}" for err in errors)
    return f"Spreadsheet validation failed:\n\n{bullets}"
