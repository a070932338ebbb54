"""Tests for resource registration and relationship resolution."""
import sys
import types

import pytest

from adminrest.repositories.sqlalchemy_store import SQLAlchemyStore
from adminrest.resources.registry import ResourceRegistry, load_registry
from tests.models import Article, Author


class TestResourceRegistry:
    """Registering models."""

    def test_register_defaults(self, session_maker):
        registry = ResourceRegistry(session_maker)

        resource = registry.register(Author)

        assert registry.get("Author") is resource
        assert "Author" in registry
        assert len(registry) == 1
        assert isinstance(resource.store, SQLAlchemyStore)
        assert resource.identity_key == "id"
        assert resource.fields == ["id", "name", "email", "password", "salt", "created_at"]

    def test_register_under_custom_name(self, session_maker):
        registry = ResourceRegistry(session_maker)

        registry.register(Author, name="writers")

        assert registry.get("writers").model is Author
        assert registry.get("Author") is None

    def test_duplicate_name_rejected(self, session_maker):
        registry = ResourceRegistry(session_maker)
        registry.register(Author)

        with pytest.raises(ValueError):
            registry.register(Author)

    def test_bind_fills_missing_session_maker(self, session_maker):
        registry = ResourceRegistry()
        resource = registry.register(Author)

        registry.bind(session_maker)

        assert resource.store.session_maker is session_maker

    def test_relationship_target_by_name_and_foreign_key(self, registry):
        articles = registry.get("Article")

        by_name = articles.relationship_target("author")
        by_key = articles.relationship_target("author_id")

        assert by_name.resource is registry.get("Author")
        assert by_name.local_key == "author_id"
        assert by_key == by_name
        assert articles.relationship_target("title") is None

    def test_unregistered_related_model(self, session_maker):
        registry = ResourceRegistry(session_maker)
        registry.register(Article)

        target = registry.get("Article").relationship_target("author")

        assert target.resource.model is Author
        assert "Author" not in registry


class TestLoadRegistry:
    """Loading the registry named in settings."""

    @pytest.fixture
    def registry_module(self, monkeypatch):
        module = types.ModuleType("admin_resources")
        module.registry = ResourceRegistry()
        module.build = lambda: module.registry
        module.not_a_registry = object()
        monkeypatch.setitem(sys.modules, "admin_resources", module)
        return module

    def test_attribute(self, registry_module):
        assert load_registry("admin_resources:registry") is registry_module.registry

    def test_factory(self, registry_module):
        assert load_registry("admin_resources:build") is registry_module.registry

    def test_wrong_type(self, registry_module):
        with pytest.raises(TypeError):
            load_registry("admin_resources:not_a_registry")

    def test_missing_attribute_separator(self):
        with pytest.raises(ValueError):
            load_registry("admin_resources")
