"""
Error Taxonomy

Fatal kinds (authentication, forbidden, disallowed navigation) unwind to the
executor and end the task. Cancellation ends the task without counting as a
failure. Everything else is absorbed at the agent boundary.
"""

import asyncio
from typing import Optional

import anthropic
import httpx

LLM_FORBIDDEN_ERROR_MESSAGE = (
    "Access denied (403 Forbidden). Please check:\n"
    "1. Your API key has the required permissions\n"
    "2. The model is available to your account or region"
)


class BrowserPilotError(Exception):
    """Base class for all browser pilot errors."""


class ChatModelAuthError(BrowserPilotError):
    """The LLM provider rejected the credentials."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class ChatModelForbiddenError(BrowserPilotError):
    """The LLM provider denied access to the requested model or resource."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class RequestCancelledError(BrowserPilotError):
    """A suspended call was aborted by the shared cancellation token."""


class URLNotAllowedError(BrowserPilotError):
    """Navigation to a URL outside the allow/deny policy."""


class ActionExecutionError(BrowserPilotError):
    """A single action failed; tolerated up to a per-step budget."""


class TooManyActionErrorsError(ActionExecutionError):
    """The per-step action error budget was exceeded."""


class SchemaValidationError(BrowserPilotError):
    """Model output did not match the expected structured schema."""


class ActionParseError(SchemaValidationError):
    """The navigator's ``action`` field could not be normalized to an action list."""


class MaxFailuresReachedError(BrowserPilotError):
    """Too many consecutive step failures; the task is abandoned."""


class LLMAPIError(RuntimeError):
    """Non-2xx response from an LLM HTTP API."""

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"LLM API error: {status_code} - {body}")
        self.status_code = status_code
        self.body = body


FATAL_ERRORS = (
    ChatModelAuthError,
    ChatModelForbiddenError,
    RequestCancelledError,
    URLNotAllowedError,
)


def _status_code(error: BaseException) -> Optional[int]:
    if isinstance(error, LLMAPIError):
        return error.status_code
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    return getattr(error, "status_code", None)


def is_authentication_error(error: BaseException) -> bool:
    """Check whether an exception means the API key was rejected."""
    if isinstance(error, ChatModelAuthError):
        return True
    if isinstance(error, anthropic.AuthenticationError):
        return True
    return _status_code(error) == 401


def is_forbidden_error(error: BaseException) -> bool:
    """Check whether an exception means the provider denied access."""
    if isinstance(error, ChatModelForbiddenError):
        return True
    if isinstance(error, anthropic.PermissionDeniedError):
        return True
    return _status_code(error) == 403


def is_aborted_error(error: BaseException) -> bool:
    """Check whether an exception came from an aborted request."""
    return isinstance(error, (RequestCancelledError, asyncio.CancelledError))


def classify_fatal(error: BaseException, role: str) -> Optional[BaseException]:
    """
    Map an exception onto a fatal kind, or None when it is recoverable.

    Args:
        error: The exception raised during a step
        role: Agent role, used in the user-facing credential message

    Returns:
        The exception to re-raise, or None if the error should be absorbed
    """
    if isinstance(error, FATAL_ERRORS):
        return error
    if is_aborted_error(error):
        if isinstance(error, RequestCancelledError):
            return error
        return RequestCancelledError(str(error) or "Request cancelled")
    if is_authentication_error(error):
        return ChatModelAuthError(
            f"{role.capitalize()} API Authentication failed. Please verify your API key",
            error,
        )
    if is_forbidden_error(error):
        return ChatModelForbiddenError(LLM_FORBIDDEN_ERROR_MESSAGE, error)
    return None
