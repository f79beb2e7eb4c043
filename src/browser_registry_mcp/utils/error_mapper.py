"""Map exceptions to structured MCP-friendly errors."""

from enum import Enum
from dataclasses import dataclass
from typing import Optional

from selenium.common.exceptions import (
    NoSuchElementException,
    StaleElementReferenceException,
    ElementNotInteractableException,
    InvalidSelectorException,
    TimeoutException,
    NoSuchWindowException,
    JavascriptException,
    WebDriverException,
    InvalidArgumentException,
    SessionNotCreatedException,
    InsecureCertificateException,
    InvalidSessionIdException,
)

from ..core.exceptions import (
    BrowserRegistryError,
    EngineFailureError,
    MissingIdentifierError,
    ResourceNotFoundError,
    ResourceUnavailableError,
    WaitTimeoutError,
    AlreadyDisconnectedError,
    SessionNotFoundError,
    SessionLimitError,
    DomainNotAllowedError,
    UnsupportedBrowserError,
)


class ErrorCode(str, Enum):
    """MCP-compatible error codes."""

    # Resolution errors
    MISSING_IDENTIFIER = "MISSING_IDENTIFIER"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    RESOURCE_UNAVAILABLE = "RESOURCE_UNAVAILABLE"

    # Lifecycle errors
    ALREADY_DISCONNECTED = "ALREADY_DISCONNECTED"
    ENGINE_FAILURE = "ENGINE_FAILURE"

    # Session errors
    SESSION_NOT_FOUND = "SESSION_NOT_FOUND"
    SESSION_LIMIT_REACHED = "SESSION_LIMIT_REACHED"

    # Browser errors
    UNSUPPORTED_BROWSER = "UNSUPPORTED_BROWSER"
    SESSION_CREATION_FAILED = "SESSION_CREATION_FAILED"
    BROWSER_TERMINATED = "BROWSER_TERMINATED"

    # Engine causes
    ELEMENT_NOT_FOUND = "ELEMENT_NOT_FOUND"
    ELEMENT_STALE = "ELEMENT_STALE"
    ELEMENT_NOT_INTERACTABLE = "ELEMENT_NOT_INTERACTABLE"
    INVALID_SELECTOR = "INVALID_SELECTOR"
    TIMEOUT = "TIMEOUT"
    WINDOW_NOT_FOUND = "WINDOW_NOT_FOUND"
    JAVASCRIPT_ERROR = "JAVASCRIPT_ERROR"
    INSECURE_CERTIFICATE = "INSECURE_CERTIFICATE"
    CONNECTION_REFUSED = "CONNECTION_REFUSED"

    # Navigation errors
    DOMAIN_NOT_ALLOWED = "DOMAIN_NOT_ALLOWED"

    # Generic errors
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


# Map exceptions to MCP error codes; subclasses before their bases
EXCEPTION_MAP: dict[type[Exception], ErrorCode] = {
    # Domain exceptions
    MissingIdentifierError: ErrorCode.MISSING_IDENTIFIER,
    ResourceNotFoundError: ErrorCode.RESOURCE_NOT_FOUND,
    WaitTimeoutError: ErrorCode.RESOURCE_UNAVAILABLE,
    ResourceUnavailableError: ErrorCode.RESOURCE_UNAVAILABLE,
    AlreadyDisconnectedError: ErrorCode.ALREADY_DISCONNECTED,
    EngineFailureError: ErrorCode.ENGINE_FAILURE,
    SessionNotFoundError: ErrorCode.SESSION_NOT_FOUND,
    SessionLimitError: ErrorCode.SESSION_LIMIT_REACHED,
    DomainNotAllowedError: ErrorCode.DOMAIN_NOT_ALLOWED,
    UnsupportedBrowserError: ErrorCode.UNSUPPORTED_BROWSER,
    ValueError: ErrorCode.INVALID_ARGUMENT,
}

# Selenium causes of engine failures
CAUSE_MAP: dict[type[Exception], ErrorCode] = {
    NoSuchElementException: ErrorCode.ELEMENT_NOT_FOUND,
    StaleElementReferenceException: ErrorCode.ELEMENT_STALE,
    ElementNotInteractableException: ErrorCode.ELEMENT_NOT_INTERACTABLE,
    InvalidSelectorException: ErrorCode.INVALID_SELECTOR,
    TimeoutException: ErrorCode.TIMEOUT,
    NoSuchWindowException: ErrorCode.WINDOW_NOT_FOUND,
    JavascriptException: ErrorCode.JAVASCRIPT_ERROR,
    InvalidArgumentException: ErrorCode.INVALID_ARGUMENT,
    SessionNotCreatedException: ErrorCode.SESSION_CREATION_FAILED,
    InsecureCertificateException: ErrorCode.INSECURE_CERTIFICATE,
    InvalidSessionIdException: ErrorCode.BROWSER_TERMINATED,
    ConnectionError: ErrorCode.CONNECTION_REFUSED,
}

# Suggestions for each error code to help the client recover
SUGGESTIONS: dict[ErrorCode, str] = {
    ErrorCode.MISSING_IDENTIFIER: (
        "Pass the handle returned by a previous tool call or its id."
    ),
    ErrorCode.RESOURCE_NOT_FOUND: (
        "No registered resource matches this id or name. "
        "Use get_browsers or get_pages to list what is registered in the session."
    ),
    ErrorCode.RESOURCE_UNAVAILABLE: (
        "Nothing of this kind is available in the session yet. "
        "Start a browser, open a page or find elements first."
    ),
    ErrorCode.ALREADY_DISCONNECTED: (
        "The browser or page is no longer connected. "
        "Stop or remove it to clean up, then start a new one."
    ),
    ErrorCode.ENGINE_FAILURE: (
        "The browser rejected the operation. Check the cause in the error details."
    ),
    ErrorCode.SESSION_NOT_FOUND: (
        "The session ID is invalid or has expired. "
        "Create a new session with create_session."
    ),
    ErrorCode.SESSION_LIMIT_REACHED: (
        "Maximum number of concurrent sessions reached. "
        "Close unused sessions with close_session before creating new ones."
    ),
    ErrorCode.UNSUPPORTED_BROWSER: (
        "Use one of: Chrome, Chromium, ChromeHeadlessShell, Firefox, Edge."
    ),
    ErrorCode.DOMAIN_NOT_ALLOWED: (
        "Navigation to this domain is not permitted by the server configuration. "
        "Only allowed domains can be accessed."
    ),
    ErrorCode.INVALID_ARGUMENT: (
        "Invalid argument provided. Check parameter types and values."
    ),
}

# Hints added to engine failures, keyed by cause
CAUSE_SUGGESTIONS: dict[ErrorCode, str] = {
    ErrorCode.TIMEOUT: (
        "Operation timed out. Increase the timeout value or check if the condition "
        "can ever be met."
    ),
    ErrorCode.ELEMENT_STALE: (
        "Element reference is outdated (page may have changed). "
        "Find the element again with find_elements before interacting with it."
    ),
    ErrorCode.ELEMENT_NOT_INTERACTABLE: (
        "Element exists but cannot be interacted with. "
        "It may be hidden, disabled, or covered by another element."
    ),
    ErrorCode.INVALID_SELECTOR: (
        "The CSS selector syntax is invalid. Check it for typos."
    ),
    ErrorCode.BROWSER_TERMINATED: (
        "The browser process is gone. Stop it to clean up the session, then start it again."
    ),
    ErrorCode.CONNECTION_REFUSED: (
        "The browser driver is not reachable. Stop it to clean up the session."
    ),
}


@dataclass
class ToolErrorResponse:
    """Structured error response for MCP tools."""

    error_code: str
    message: str
    suggestion: Optional[str] = None
    details: Optional[dict] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for tool response."""
        result = {
            "success": False,
            "error": {
                "code": self.error_code,
                "message": self.message,
            },
        }
        if self.suggestion:
            result["error"]["suggestion"] = self.suggestion
        if self.details:
            result["error"]["details"] = self.details
        return result


def map_cause(cause: Optional[BaseException]) -> ErrorCode:
    """Map the underlying cause of an engine failure to an error code."""
    if cause is None:
        return ErrorCode.UNKNOWN_ERROR

    for exc_class, code in CAUSE_MAP.items():
        if isinstance(cause, exc_class):
            return code

    if isinstance(cause, WebDriverException):
        msg_lower = str(cause).lower()
        if "connection refused" in msg_lower:
            return ErrorCode.CONNECTION_REFUSED
        if "session" in msg_lower and ("not found" in msg_lower or "deleted" in msg_lower):
            return ErrorCode.BROWSER_TERMINATED

    return ErrorCode.UNKNOWN_ERROR


def map_error(exc: Exception) -> tuple[ErrorCode, str]:
    """
    Map an exception to an MCP error code and message.

    Args:
        exc: The exception to map

    Returns:
        Tuple of (ErrorCode, error message)
    """
    exc_type = type(exc)

    # Check exact type first
    if exc_type in EXCEPTION_MAP:
        return EXCEPTION_MAP[exc_type], str(exc)

    # Check parent types
    for exc_class, code in EXCEPTION_MAP.items():
        if isinstance(exc, exc_class):
            return code, str(exc)

    if isinstance(exc, BrowserRegistryError):
        return ErrorCode.INTERNAL_ERROR, str(exc)

    # Selenium errors that escaped the engine
    if isinstance(exc, WebDriverException):
        return ErrorCode.ENGINE_FAILURE, str(exc)

    # Fallback
    return ErrorCode.UNKNOWN_ERROR, str(exc)


def create_error_response(
    code: ErrorCode,
    message: str,
    details: Optional[dict] = None,
) -> ToolErrorResponse:
    """Create a structured error response with suggestion."""
    return ToolErrorResponse(
        error_code=code.value,
        message=message,
        suggestion=SUGGESTIONS.get(code),
        details=details,
    )


def error_response_for(exc: Exception) -> ToolErrorResponse:
    """
    Build the full error response for an exception raised by a tool.

    Engine failures carry their cause code and, when one exists, a
    cause-specific suggestion.
    """
    code, message = map_error(exc)
    if not isinstance(exc, EngineFailureError):
        return create_error_response(code, message)

    cause = exc.cause or exc.__cause__
    cause_code = map_cause(cause)
    response = create_error_response(
        code,
        message,
        details={
            "operation": exc.operation,
            "cause": type(cause).__name__ if cause is not None else None,
            "cause_code": cause_code.value,
        },
    )
    if cause_code in CAUSE_SUGGESTIONS:
        response.suggestion = CAUSE_SUGGESTIONS[cause_code]
    return response
