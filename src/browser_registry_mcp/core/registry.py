"""Session-scoped keyed store of handles, one per resource kind."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, Generic, Optional, TypeVar

from .exceptions import ResourceNotFoundError
from .handles import ResourceKind

if TYPE_CHECKING:
    from .session_manager import HostSession

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ResourceRegistry(Generic[T]):
    """
    Pure keyed store mapping string ids to handles.

    Iteration follows creation order: saving an id moves it to the end, so
    the last matching entry is always the most recently created one. The
    registry never checks liveness.
    """

    def __init__(self, kind: ResourceKind):
        self.kind = kind
        self._items: Dict[str, T] = {}

    def save(self, identifier: str, value: T) -> None:
        """Insert or replace the value stored under ``identifier``."""
        if identifier in self._items:
            logger.debug(f"Replacing {self.kind.value} '{identifier}'")
            del self._items[identifier]
        self._items[identifier] = value

    def get(self, identifier: str) -> T:
        """
        Get the value stored under ``identifier``.

        Raises:
            ResourceNotFoundError: If nothing is stored under that id
        """
        try:
            return self._items[identifier]
        except KeyError:
            raise ResourceNotFoundError(self.kind.value, identifier) from None

    def find(self, identifier: str) -> Optional[T]:
        """Get the value stored under ``identifier`` or None."""
        return self._items.get(identifier)

    def get_all(self) -> Dict[str, T]:
        """Return a point-in-time copy of all entries."""
        return dict(self._items)

    def remove(self, identifier: str) -> bool:
        """Remove an entry. Returns False if it was not there."""
        if identifier in self._items:
            del self._items[identifier]
            return True
        return False

    def __contains__(self, identifier: object) -> bool:
        return identifier in self._items

    def __len__(self) -> int:
        return len(self._items)


def get_registry(
    session: "HostSession", kind: ResourceKind, create: bool = False
) -> Optional[ResourceRegistry]:
    """
    Get the registry for ``kind`` from a session slot.

    The registry is created and stored in the session only when ``create`` is
    set; readers get None for a kind that was never written.
    """
    registry = session.get(kind.slot)
    if isinstance(registry, ResourceRegistry):
        return registry
    if not create:
        return None
    registry = ResourceRegistry(kind)
    session.set(kind.slot, registry)
    return registry
