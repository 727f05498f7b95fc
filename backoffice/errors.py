from typing import Any, Optional


class BackofficeError(Exception):
    """Base class for all errors raised by the back-office service."""


class WorkflowError(BackofficeError):
    """Recoverable error raised by the expense decision workflow."""


class ValidationError(WorkflowError):
    """Input rejected before any state change (e.g. empty rejection reason)."""


class ToggleWindowExpired(WorkflowError):
    def __init__(self, message: str = "Toggle window expired (1 hour)."):
        super().__init__(message)


class InvalidTransition(WorkflowError):
    def __init__(self, from_status: Any, to_status: Any):
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(f"Cannot move expense from {from_status} to {to_status}")


class ExpenseNotFound(WorkflowError):
    def __init__(self, expense_id: str):
        self.expense_id = expense_id
        super().__init__(f"Expense {expense_id} not found")


class ApiError(BackofficeError):
    """
    Failure talking to the remote back-office API.
    `message` is already phrased for the operator.
    """
    def __init__(self, message: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class Unauthorized(ApiError):
    def __init__(self, message: str = "Session expired. Please login again.", payload: Any = None):
        super().__init__(message, status_code=401, payload=payload)


class Forbidden(ApiError):
    def __init__(self, message: str = "You do not have permission to perform this action.", payload: Any = None):
        super().__init__(message, status_code=403, payload=payload)


def _join_message(message: Any) -> Optional[str]:
    if isinstance(message, list):
        return ", ".join(str(m) for m in message)
    return message or None


def api_error_from_response(status_code: int, data: Any) -> ApiError:
    """Translate a failed API response into an ApiError with a readable message."""
    body = data if isinstance(data, dict) else {}

    if status_code == 401:
        return Unauthorized(payload=data)
    if status_code == 403:
        return Forbidden(payload=data)
    if status_code == 404:
        return ApiError("Resource not found.", status_code, data)
    if status_code == 422:
        return ApiError(_join_message(body.get("message")) or "Validation error", status_code, data)
    if status_code == 500:
        return ApiError("Server error. Please try again later.", status_code, data)

    message = _join_message(body.get("message")) or body.get("error")
    if message:
        return ApiError(message, status_code, data)
    return ApiError(f"An error occurred ({status_code})", status_code, data)
