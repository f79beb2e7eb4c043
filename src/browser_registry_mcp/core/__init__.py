"""Core of the browser registry: handles, registries, resolution and lifecycle."""

from .exceptions import (
    BrowserRegistryError,
    MissingIdentifierError,
    ResourceNotFoundError,
    ResourceUnavailableError,
    WaitTimeoutError,
    AlreadyDisconnectedError,
    EngineFailureError,
    SessionNotFoundError,
    SessionLimitError,
    DomainNotAllowedError,
    UnsupportedBrowserError,
)
from .handles import (
    BrowserHandle,
    PageHandle,
    ElementHandle,
    HandleRef,
    NameRef,
    Reference,
    ResourceKind,
    SupportedBrowser,
)
from .registry import ResourceRegistry, get_registry
from .resolver import IdentifierResolver, Resolved
from .lifecycle import LifecycleCoordinator, LifecycleResult, Outcome
from .session_manager import HostSession, SessionManager, SessionSweeper

__all__ = [
    "BrowserRegistryError",
    "MissingIdentifierError",
    "ResourceNotFoundError",
    "ResourceUnavailableError",
    "WaitTimeoutError",
    "AlreadyDisconnectedError",
    "EngineFailureError",
    "SessionNotFoundError",
    "SessionLimitError",
    "DomainNotAllowedError",
    "UnsupportedBrowserError",
    "BrowserHandle",
    "PageHandle",
    "ElementHandle",
    "HandleRef",
    "NameRef",
    "Reference",
    "ResourceKind",
    "SupportedBrowser",
    "ResourceRegistry",
    "get_registry",
    "IdentifierResolver",
    "Resolved",
    "LifecycleCoordinator",
    "LifecycleResult",
    "Outcome",
    "HostSession",
    "SessionManager",
    "SessionSweeper",
]
