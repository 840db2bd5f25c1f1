"""Outcome values and the error taxonomy shared by the core operations.

Core operations return a `Result` on success and raise a `FormError`
subclass on failure. The HTTP layer turns both into the same
`{"success", "message", ...}` body, using `status_code` as the hint.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any


@dataclass
class Result:
    success: bool
    message: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "message": self.message, **self.data}


def ok(message: str, **data: Any) -> Result:
    """Build a successful `Result` carrying `data` as its payload."""
    return Result(success=True, message=message, data=data)


class FormError(Exception):
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_result(self) -> Result:
        return Result(success=False, message=self.message)


class NotFound(FormError):
    """Entity absent, or absent to this viewer (private or unowned)."""
    status_code = 404
    default_message = "Not found"


class Forbidden(FormError):
    """Entity exists and its existence is already implied, but the requester does not own it."""
    status_code = 403
    default_message = "Forbidden"


class ValidationFailed(FormError):
    status_code = 400
    default_message = "Invalid input"


class StateError(FormError):
    status_code = 409
    default_message = "Conflicting state"


class FormClosed(StateError):
    status_code = 403
    default_message = "Form is closed"


class InternalError(FormError):
    status_code = 500
    default_message = "Internal server error"
