"""Resolution of caller references (handles or strings) to registered handles."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Generic, Optional, TypeVar

from .exceptions import (
    MissingIdentifierError,
    ResourceNotFoundError,
    ResourceUnavailableError,
)
from .handles import HANDLE_TYPES, HandleRef, NameRef, ResourceKind, as_reference, split_id
from .registry import ResourceRegistry, get_registry

if TYPE_CHECKING:
    from .session_manager import HostSession

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNAVAILABLE_MESSAGES = {
    ResourceKind.BROWSER: "No browsers are currently running. Use start_browser first.",
    ResourceKind.PAGE: "No browser pages are currently open. Use new_page first.",
    ResourceKind.ELEMENT: "No browser elements are available. Use find_elements first.",
}


@dataclass(frozen=True)
class Resolved(Generic[T]):
    """A resolved reference: canonical id plus handle."""

    id: str
    handle: T


class IdentifierResolver(Generic[T]):
    """
    Resolves a reference for one resource kind.

    Order, first success wins:
    1. a handle of the expected kind is used as is;
    2. the string is looked up as an exact id;
    3. the string is compared case-insensitively with the part of every
       registered id after its first ``_``. When several ids share that
       suffix, the most recently created one wins.
    """

    def __init__(self, kind: ResourceKind):
        self.kind = kind
        self.handle_type = HANDLE_TYPES[kind]

    def resolve(
        self,
        session: "HostSession",
        reference: Any = None,
        fallback: Optional[str] = None,
    ) -> Resolved[T]:
        """
        Resolve ``reference`` (or ``fallback`` when it is absent).

        Raises:
            MissingIdentifierError: Neither a handle nor a string was given
            ResourceUnavailableError: No registry for this kind in the session
            ResourceNotFoundError: The string matches no registered id
        """
        ref = as_reference(reference) or as_reference(fallback)

        if isinstance(ref, HandleRef):
            if isinstance(ref.handle, self.handle_type):
                return Resolved(ref.handle.id, ref.handle)
            ref = NameRef(str(getattr(ref.handle, "id", ref.handle)))

        if ref is None:
            raise MissingIdentifierError(self.kind.value)

        registry = get_registry(session, self.kind)
        if registry is None:
            raise ResourceUnavailableError(UNAVAILABLE_MESSAGES[self.kind])

        candidate = ref.name
        value = registry.find(candidate)
        if value is not None:
            return Resolved(candidate, value)

        matched = self.match_suffix(registry, candidate)
        if matched is not None:
            return Resolved(matched, registry.get(matched))

        raise ResourceNotFoundError(self.kind.value, candidate)

    @staticmethod
    def match_suffix(registry: ResourceRegistry, candidate: str) -> Optional[str]:
        """Find the newest id whose suffix equals ``candidate``, ignoring case."""
        wanted = candidate.lower()
        matches = [
            identifier
            for identifier in registry.get_all()
            if split_id(identifier)[1] and split_id(identifier)[1].lower() == wanted
        ]
        if not matches:
            return None
        if len(matches) > 1:
            logger.debug(
                f"'{candidate}' matches {len(matches)} entries {matches}; using '{matches[-1]}'"
            )
        return matches[-1]


browser_resolver: IdentifierResolver = IdentifierResolver(ResourceKind.BROWSER)
page_resolver: IdentifierResolver = IdentifierResolver(ResourceKind.PAGE)
element_resolver: IdentifierResolver = IdentifierResolver(ResourceKind.ELEMENT)
