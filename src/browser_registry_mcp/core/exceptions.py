"""Domain-specific exceptions for the browser registry MCP server."""

from typing import Optional


class BrowserRegistryError(Exception):
    """Base exception for all browser registry errors.

    Every subclass carries a stable machine-readable ``kind``.
    """

    kind = "INTERNAL_ERROR"


class MissingIdentifierError(BrowserRegistryError):
    """Raised when a command gets neither a handle nor a string reference."""

    kind = "MISSING_IDENTIFIER"

    def __init__(self, resource: str):
        self.resource = resource
        super().__init__(
            f"A {resource} reference is required: pass a {resource} handle or its id"
        )


class ResourceNotFoundError(BrowserRegistryError):
    """Raised when a string reference matches nothing in the registry."""

    kind = "RESOURCE_NOT_FOUND"

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource.capitalize()} '{identifier}' not found")


class ResourceUnavailableError(BrowserRegistryError):
    """Raised when a resource kind has never been populated in the session."""

    kind = "RESOURCE_UNAVAILABLE"


class WaitTimeoutError(ResourceUnavailableError):
    """Raised when a wait condition is not met in time."""

    def __init__(self, condition: str, timeout_ms: int):
        self.condition = condition
        self.timeout_ms = timeout_ms
        super().__init__(f"Timeout ({timeout_ms}ms) waiting for: {condition}")


class AlreadyDisconnectedError(BrowserRegistryError):
    """Raised when a registered resource's connection is already dead."""

    kind = "ALREADY_DISCONNECTED"

    def __init__(self, resource: str, identifier: str):
        self.resource = resource
        self.identifier = identifier
        super().__init__(f"{resource.capitalize()} '{identifier}' is no longer connected")


class EngineFailureError(BrowserRegistryError):
    """Raised when a call into the automation engine fails.

    The original exception is kept as ``cause`` (and ``__cause__``).
    """

    kind = "ENGINE_FAILURE"

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        detail = f": {cause}" if cause is not None else ""
        super().__init__(f"{operation} failed{detail}")


class SessionNotFoundError(BrowserRegistryError):
    """Raised when referencing a non-existent or expired host session."""

    kind = "SESSION_NOT_FOUND"

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class SessionLimitError(BrowserRegistryError):
    """Raised when max session limit is reached."""

    kind = "SESSION_LIMIT_REACHED"

    def __init__(self, max_sessions: int):
        self.max_sessions = max_sessions
        super().__init__(f"Maximum sessions ({max_sessions}) reached")


class DomainNotAllowedError(BrowserRegistryError):
    """Raised when attempting to navigate to a domain not in the allowed list."""

    kind = "DOMAIN_NOT_ALLOWED"

    def __init__(self, domain: str, allowed_domains: list[str]):
        self.domain = domain
        self.allowed_domains = allowed_domains
        super().__init__(f"Domain '{domain}' is not in allowed list: {allowed_domains}")


class UnsupportedBrowserError(BrowserRegistryError):
    """Raised for a browser type name that is not supported."""

    kind = "UNSUPPORTED_BROWSER"

    def __init__(self, browser_type: str, supported: list[str]):
        self.browser_type = browser_type
        self.supported = supported
        super().__init__(
            f"Unsupported browser: {browser_type}. Supported browsers: {supported}"
        )
