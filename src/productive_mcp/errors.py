"""Error taxonomy for Productive.io API failures.

Every failed call surfaces as a single ``ProductiveAPIError`` carrying a
human-actionable message. HTTP errors are classified by status code first;
keyword matching on the upstream detail only picks a more specific hint.
"""
import enum
import json
from typing import Any, Optional

from .rate_limiter import RATE_LIMIT_REQUESTS, RATE_LIMIT_WINDOW_MS


REQUIRED_ENV_VARS = ("PRODUCTIVE_API_TOKEN", "PRODUCTIVE_ORG_ID")


class ErrorKind(str, enum.Enum):
    """What went wrong, independent of the message wording."""
    CONFIGURATION = "configuration"
    NO_RESPONSE = "no_response"
    REQUEST_SETUP = "request_setup"
    BAD_REQUEST = "bad_request"
    AUTHENTICATION = "authentication"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    RATE_LIMITED = "rate_limited"
    SERVER_ERROR = "server_error"
    INVALID_RESPONSE = "invalid_response"
    HTTP_ERROR = "http_error"


class ProductiveAPIError(Exception):
    """Raised for any failed Productive.io call.

    Attributes:
        message: User-facing message, already classified
        status_code: HTTP status when a response was received, else None
        kind: ErrorKind of the failure
        cause: The underlying exception, if any
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        kind: ErrorKind = ErrorKind.HTTP_ERROR,
        cause: Optional[BaseException] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.kind = kind
        self.cause = cause
        super().__init__(message)


class ConfigurationError(ProductiveAPIError):
    """Raised when required startup configuration is missing or unreadable."""

    def __init__(self, message: str):
        super().__init__(message, kind=ErrorKind.CONFIGURATION)


def extract_error_message(data: Any) -> str:
    """Pull the most useful detail out of an error response body.

    Prefers the JSON:API ``errors`` array, then a top-level ``message`` or
    ``error`` string.
    """
    if isinstance(data, str):
        return data

    if isinstance(data, dict):
        errors = data.get("errors")
        if isinstance(errors, list) and errors:
            messages = []
            for err in errors:
                if isinstance(err, dict) and isinstance(err.get("detail"), str):
                    messages.append(err["detail"])
                elif isinstance(err, dict) and isinstance(err.get("title"), str):
                    messages.append(err["title"])
                else:
                    messages.append(json.dumps(err))
            return "; ".join(messages)

        if isinstance(data.get("message"), str):
            return data["message"]
        if isinstance(data.get("error"), str):
            return data["error"]

    return "Unknown error occurred."


def _format_not_found(message: str) -> str:
    lowered = message.lower()
    if "project" in lowered:
        return f"Error: Project not found. {message} Use productive_list_projects to see available projects."
    if "task" in lowered:
        return f"Error: Task not found. {message}"
    return f"Error: Resource not found. {message}"


def _format_validation(message: str) -> str:
    lowered = message.lower()
    if "title" in lowered:
        return f"Error: Validation failed: invalid title. {message} Task titles must be 1-200 characters."
    if "date" in lowered:
        return f'Error: Validation failed: invalid date format. {message} Use ISO 8601 format (e.g., "2025-11-20").'
    if "project" in lowered:
        return f"Error: Validation failed: invalid project. {message} Use productive_list_projects to see available projects."
    return f"Error: Validation failed. {message}"


def classify_http_error(status: int, data: Any) -> tuple[ErrorKind, str]:
    """Map an HTTP error response to (kind, actionable message)."""
    if status == 400:
        return ErrorKind.BAD_REQUEST, f"Error: Bad request. {extract_error_message(data)}"
    if status == 401:
        return (
            ErrorKind.AUTHENTICATION,
            "Error: Authentication failed. Please check your PRODUCTIVE_API_TOKEN environment variable.",
        )
    if status == 403:
        return (
            ErrorKind.FORBIDDEN,
            "Error: Access forbidden. Please check your PRODUCTIVE_ORG_ID and API token permissions.",
        )
    if status == 404:
        return ErrorKind.NOT_FOUND, _format_not_found(extract_error_message(data))
    if status == 422:
        return ErrorKind.VALIDATION, _format_validation(extract_error_message(data))
    if status == 429:
        return (
            ErrorKind.RATE_LIMITED,
            f"Error: Rate limit exceeded ({RATE_LIMIT_REQUESTS} requests/{RATE_LIMIT_WINDOW_MS / 1000:g}s). "
            "Please wait before retrying.",
        )
    if 500 <= status < 600:
        return ErrorKind.SERVER_ERROR, "Error: Productive.io server error. Please try again later."

    return (
        ErrorKind.HTTP_ERROR,
        f"Error: API request failed with status {status}. {extract_error_message(data)}",
    )


def http_error(status: int, data: Any, cause: Optional[BaseException] = None) -> ProductiveAPIError:
    kind, message = classify_http_error(status, data)
    return ProductiveAPIError(message, status_code=status, kind=kind, cause=cause)


def no_response_error(cause: Optional[BaseException] = None) -> ProductiveAPIError:
    return ProductiveAPIError(
        "Error: No response from Productive.io API. Please check your internet connection.",
        kind=ErrorKind.NO_RESPONSE,
        cause=cause,
    )


def invalid_response_error(cause: BaseException) -> ProductiveAPIError:
    """A request that was sent but whose response could not be read (bad encoding, redirect loop)."""
    return ProductiveAPIError(
        f"Error: Invalid response from Productive.io API. {type(cause).__name__}: {cause}",
        kind=ErrorKind.INVALID_RESPONSE,
        cause=cause,
    )


def request_setup_error(cause: BaseException) -> ProductiveAPIError:
    return ProductiveAPIError(
        f"Error: Request setup failed. {cause}",
        kind=ErrorKind.REQUEST_SETUP,
        cause=cause,
    )


def validate_environment(environ: dict) -> None:
    """Fail fast when required credentials are absent.

    Raises:
        ConfigurationError: naming every missing variable
    """
    missing = [name for name in REQUIRED_ENV_VARS if not environ.get(name)]
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}. "
            "Please set these in your .env file or environment."
        )
