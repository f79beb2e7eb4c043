"""Unit tests for ResourceRegistry and session slots."""

import pytest

from browser_registry_mcp.core.exceptions import ResourceNotFoundError
from browser_registry_mcp.core.handles import ResourceKind
from browser_registry_mcp.core.registry import ResourceRegistry, get_registry


class TestResourceRegistry:
    """Tests for the keyed store."""

    def test_save_and_get(self):
        registry = ResourceRegistry(ResourceKind.PAGE)
        registry.save("Chrome_Page1", "page-1")

        assert registry.get("Chrome_Page1") == "page-1"
        assert "Chrome_Page1" in registry
        assert len(registry) == 1

    def test_get_missing_raises(self):
        registry = ResourceRegistry(ResourceKind.PAGE)

        with pytest.raises(ResourceNotFoundError) as exc:
            registry.get("Chrome_Page9")

        assert "Page 'Chrome_Page9' not found" in str(exc.value)

    def test_find_missing_returns_none(self):
        assert ResourceRegistry(ResourceKind.BROWSER).find("Chrome") is None

    def test_save_overwrites(self):
        registry = ResourceRegistry(ResourceKind.BROWSER)
        registry.save("Chrome", "old")
        registry.save("Chrome", "new")

        assert registry.get("Chrome") == "new"
        assert len(registry) == 1

    def test_resave_moves_entry_to_end(self):
        """Iteration order is creation order, re-saves count as newest."""
        registry = ResourceRegistry(ResourceKind.BROWSER)
        registry.save("Chrome", 1)
        registry.save("Firefox", 2)
        registry.save("Chrome", 3)

        assert list(registry.get_all()) == ["Firefox", "Chrome"]

    def test_get_all_is_a_copy(self):
        registry = ResourceRegistry(ResourceKind.ELEMENT)
        registry.save("a", 1)
        snapshot = registry.get_all()
        registry.remove("a")

        assert snapshot == {"a": 1}
        assert len(registry) == 0

    def test_remove(self):
        registry = ResourceRegistry(ResourceKind.ELEMENT)
        registry.save("a", 1)

        assert registry.remove("a") is True
        assert registry.remove("a") is False


class TestGetRegistry:
    """Tests for lazily created registries in session slots."""

    def test_absent_without_create(self, session):
        assert get_registry(session, ResourceKind.PAGE) is None
        assert session.get("registry:page") is None

    def test_created_on_write(self, session):
        registry = get_registry(session, ResourceKind.PAGE, create=True)

        assert isinstance(registry, ResourceRegistry)
        assert session.get("registry:page") is registry
        assert get_registry(session, ResourceKind.PAGE) is registry

    def test_kinds_are_separate(self, session):
        pages = get_registry(session, ResourceKind.PAGE, create=True)
        elements = get_registry(session, ResourceKind.ELEMENT, create=True)

        assert pages is not elements
        assert get_registry(session, ResourceKind.BROWSER) is None
