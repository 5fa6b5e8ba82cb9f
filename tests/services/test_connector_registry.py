"""Tests for the connector registry: catalog loading, lookup and mentions."""

import json
import logging

import pytest

from flow_architect.errors import CatalogLoadError
from flow_architect.orchestrator.models.connector import ConnectorCategory, ConnectorRole
from flow_architect.services.connector_categories import CONNECTOR_ALIASES, categorize
from flow_architect.services.connector_registry import (
    DEFAULT_CATALOG_PATH,
    ConnectorRegistry,
    build_connector,
    get_default_registry,
)


def _write_catalog(path, entries):
    path.write_text(json.dumps({"connectors": entries}), encoding="utf-8")
    return path


class TestPackagedCatalog:
    """The packaged catalog and the categorization rules agree."""

    def test_declared_categories_match_rules(self, registry):
        mismatched = [
            (c.name, c.category.value, categorize(c.name).value)
            for c in registry.all()
            if categorize(c.name) != c.category
        ]
        assert mismatched == []

    def test_names_are_unique(self, registry):
        names = [n.casefold() for n in registry.names()]
        assert len(names) == len(set(names))

    def test_every_category_is_populated(self, registry):
        for category in ConnectorCategory:
            assert registry.by_category(category), f"no connectors in {category.value}"

    def test_aliases_point_at_catalog_names(self, registry):
        for alias, target in CONNECTOR_ALIASES.items():
            assert registry.lookup(target) is not None, f"alias {alias!r} -> missing {target!r}"

    def test_catalog_order_preserved(self, registry):
        assert registry.names()[0] == "Google BigQuery"
        assert registry.all()[0].name == "Google BigQuery"

    def test_connectors_take_category_defaults(self, registry):
        openai = registry.lookup("Open AI")
        assert openai.supported_roles == [ConnectorRole.DESTINATION]
        assert openai.credentials.mandatory == ("apiKey", "model")


class TestCatalogLoading:
    """Loading catalog files."""

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(CatalogLoadError) as exc_info:
            ConnectorRegistry.from_catalog_file(tmp_path / "nope.json")
        assert exc_info.value.error_code == "E-4001"

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(CatalogLoadError):
            ConnectorRegistry.from_catalog_file(path)

    def test_wrong_shape_raises(self, tmp_path):
        path = tmp_path / "shape.json"
        path.write_text(json.dumps({"items": []}), encoding="utf-8")
        with pytest.raises(CatalogLoadError):
            ConnectorRegistry.from_catalog_file(path)

    def test_unknown_category_is_derived(self, tmp_path, caplog):
        path = _write_catalog(tmp_path / "c.json", [{"name": "Kafka", "category": "Queues"}])
        with caplog.at_level(logging.WARNING):
            reg = ConnectorRegistry.from_catalog_file(path)
        assert reg.lookup("Kafka").category == ConnectorCategory.STREAMING
        assert "unknown category" in caplog.text

    def test_missing_category_is_derived(self, tmp_path):
        path = _write_catalog(tmp_path / "c.json", [{"name": "Shopify"}])
        reg = ConnectorRegistry.from_catalog_file(path)
        assert reg.lookup("Shopify").category == ConnectorCategory.ECOMMERCE

    def test_duplicate_names_keep_first(self, tmp_path, caplog):
        path = _write_catalog(
            tmp_path / "c.json",
            [
                {"name": "Stripe", "category": "Other"},
                {"name": "stripe", "category": "Generic APIs"},
            ],
        )
        with caplog.at_level(logging.WARNING):
            reg = ConnectorRegistry.from_catalog_file(path)
        assert reg.names() == ["Stripe"]
        assert reg.lookup("STRIPE").category == ConnectorCategory.OTHER
        assert "Duplicate connector" in caplog.text

    def test_default_registry_is_cached(self):
        ConnectorRegistry.reset_instance()
        try:
            first = get_default_registry()
            assert get_default_registry() is first
        finally:
            ConnectorRegistry.reset_instance()

    def test_default_catalog_path_exists(self):
        assert DEFAULT_CATALOG_PATH.exists()


class TestLookupAndResolve:
    """Exact lookup, aliases and partial matches."""

    def test_lookup_is_exact_and_case_insensitive(self, registry):
        assert registry.lookup("shopify").name == "Shopify"
        assert registry.lookup("Shop") is None

    def test_lookup_unknown_returns_none(self, registry):
        assert registry.lookup("Acme Ledger") is None

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("bq", "Google BigQuery"),
            ("BigQuery", "Google BigQuery"),
            ("big query", "Google BigQuery"),
            ("sf", "Salesforce"),
            ("postgres", "PostgreSQL"),
            ("s3", "Amazon S3"),
            ("AWS S3", "Amazon S3"),
            ("mongo", "MongoDB"),
        ],
    )
    def test_aliases(self, registry, name, expected):
        assert registry.resolve(name).name == expected

    def test_mention_inside_longer_name(self, registry):
        assert registry.resolve("our Snowflake warehouse").name == "Snowflake"

    def test_partial_containment(self, registry):
        assert registry.resolve("Zendesk").name == "Zendesk Support"

    def test_short_partial_not_matched(self, registry):
        assert registry.resolve("zz") is None

    def test_unknown_returns_none(self, registry):
        assert registry.resolve("Acme Ledger") is None
        assert registry.resolve("   ") is None


class TestFindMentions:
    """Connectors named in free text."""

    def test_order_of_appearance(self, registry):
        found = registry.find_mentions("Connect Shopify to BigQuery")
        assert [c.name for c in found] == ["Shopify", "Google BigQuery"]

    def test_longest_match_wins(self, registry):
        found = registry.find_mentions("load it into Google Cloud Storage")
        assert [c.name for c in found] == ["Google Cloud Storage"]

    def test_no_match_inside_words(self, registry):
        assert registry.find_mentions("mystore.myshopify.com") == []

    def test_duplicates_collapsed(self, registry):
        found = registry.find_mentions("bq, BigQuery and Google BigQuery")
        assert [c.name for c in found] == ["Google BigQuery"]

    def test_no_mentions(self, registry):
        assert registry.find_mentions("hello there") == []


class TestCustomConnectorsAndTransforms:

    def test_custom_connector_allows_both_roles(self, registry):
        custom = registry.custom_connector("Acme Ledger")
        assert custom.custom is True
        assert custom.category == ConnectorCategory.OTHER
        assert custom.supported_roles == [ConnectorRole.SOURCE, ConnectorRole.DESTINATION]
        assert custom.credentials.mandatory == ("baseUrl or host", "auth")

    def test_custom_connector_uses_category_credentials(self, registry):
        custom = registry.custom_connector("Acme CRM")
        assert custom.category == ConnectorCategory.CRM
        assert "clientSecret" in custom.credentials.mandatory

    def test_build_connector_flags_custom(self):
        connector = build_connector("X", ConnectorCategory.OTHER, custom=True)
        assert connector.custom

    def test_transform_lookup(self, registry):
        assert registry.lookup_transform("cleanse").name == "Cleanse"
        assert registry.lookup_transform("enrich").name == "Enrich & Map"
        assert registry.lookup_transform("please cleanse it").name == "Cleanse"

    def test_transform_lookup_exact_only(self, registry):
        assert registry.lookup_transform("cleanse", partial=False).name == "Cleanse"
        assert registry.lookup_transform("enrich", partial=False) is None
        assert registry.lookup_transform("data", partial=False) is None

    def test_transform_lookup_unknown(self, registry):
        assert registry.lookup_transform("kk") is None
        assert registry.lookup_transform("Pivot") is None

    def test_transforms_listed(self, registry):
        assert [t.name for t in registry.transforms()] == [
            "Map & Validate",
            "Cleanse",
            "Enrich & Map",
            "Data Analysis",
        ]
