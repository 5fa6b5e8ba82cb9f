"""Connector registry: the static, categorized connector catalog.

Loaded once per process from the packaged ``data/connectors.json`` and
shared read-only by every session. Unknown names are a normal ``None``
result; callers decide whether to offer a custom connector.

Example:
    registry = ConnectorRegistry.get_instance()
    bq = registry.resolve("bq")
    registry.find_mentions("Connect Shopify to BigQuery")
"""

import json
import logging
import re
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ValidationError

from flow_architect.errors import CatalogLoadError
from flow_architect.orchestrator.models.connector import (
    BuiltinTransform,
    Connector,
    ConnectorCategory,
)
from flow_architect.services.connector_categories import (
    BUILTIN_TRANSFORMS,
    CATEGORY_CREDENTIALS,
    CATEGORY_ROLES,
    CONNECTOR_ALIASES,
    categorize,
)

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).resolve().parent.parent / "data" / "connectors.json"

# Partial matches shorter than this are too noisy ("a", "db")
_MIN_PARTIAL_LENGTH = 3


class _CatalogEntry(BaseModel):
    name: str
    category: Optional[str] = None


class _CatalogFile(BaseModel):
    connectors: list[_CatalogEntry]


def build_connector(name: str, category: ConnectorCategory, custom: bool = False) -> Connector:
    """Build a connector with the role and credential defaults of its category.

    Args:
        name: Display name.
        category: Connector category.
        custom: Whether the connector is outside the catalog.

    Returns:
        Immutable Connector.
    """
    return Connector(
        name=name,
        category=category,
        roles=CATEGORY_ROLES[category],
        credentials=CATEGORY_CREDENTIALS[category],
        custom=custom,
    )


def _mention_pattern(term: str) -> re.Pattern[str]:
    return re.compile(r"(?<!\w)" + re.escape(term) + r"(?!\w)", re.IGNORECASE)


class ConnectorRegistry:
    """Read-only catalog of known connectors.

    Iteration order is catalog order and is used wherever a deterministic
    order is needed (classifier prompts, partial-name matching).
    """

    _instance: "ConnectorRegistry | None" = None

    def __init__(self, connectors: list[Connector]) -> None:
        """Initialize from already-built connectors.

        Args:
            connectors: Connectors in catalog order. Names must be unique
                (case-insensitive); later duplicates are dropped.
        """
        self._connectors: dict[str, Connector] = {}
        for connector in connectors:
            key = connector.name.casefold()
            if key in self._connectors:
                logger.warning("Duplicate connector %r in catalog, keeping the first", connector.name)
                continue
            self._connectors[key] = connector

        self._aliases: dict[str, Connector] = {
            alias: self._connectors[target.casefold()]
            for alias, target in CONNECTOR_ALIASES.items()
            if target.casefold() in self._connectors
        }

        # Longest terms first so "Google Cloud Storage" beats "Google"
        terms = [(c.name, c) for c in self._connectors.values()]
        terms.extend(self._aliases.items())
        terms.sort(key=lambda item: len(item[0]), reverse=True)
        self._mention_patterns = [(_mention_pattern(term), c) for term, c in terms]

        self._transforms = {t.name.casefold(): t for t in BUILTIN_TRANSFORMS}

    @classmethod
    def from_catalog_file(cls, path: Path | str) -> "ConnectorRegistry":
        """Load a registry from a catalog JSON file.

        Entries with a missing or unknown category get one derived from
        their name.

        Args:
            path: Path to a ``{"connectors": [{"name", "category"}]}`` file.

        Returns:
            Loaded registry.

        Raises:
            CatalogLoadError: If the file is missing, not JSON, or has the
                wrong shape.
        """
        path = Path(path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            catalog = _CatalogFile.model_validate(raw)
        except OSError as e:
            raise CatalogLoadError(str(path), str(e)) from e
        except json.JSONDecodeError as e:
            raise CatalogLoadError(str(path), f"invalid JSON: {e}") from e
        except ValidationError as e:
            raise CatalogLoadError(str(path), f"unexpected structure: {e.error_count()} error(s)") from e

        connectors = []
        for entry in catalog.connectors:
            derived = categorize(entry.name)
            try:
                category = ConnectorCategory(entry.category)
            except ValueError:
                logger.warning(
                    "Connector %r has unknown category %r, using %s",
                    entry.name, entry.category, derived.value,
                )
                category = derived
            connectors.append(build_connector(entry.name, category))

        logger.info("Loaded %d connectors from %s", len(connectors), path)
        return cls(connectors)

    @classmethod
    def get_instance(cls) -> "ConnectorRegistry":
        """Get or load the process-wide registry from the packaged catalog.

        Returns:
            The shared ConnectorRegistry instance.
        """
        if cls._instance is None:
            cls._instance = cls.from_catalog_file(DEFAULT_CATALOG_PATH)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Reset singleton for testing."""
        cls._instance = None

    def lookup(self, name: str) -> Optional[Connector]:
        """Exact, case-insensitive lookup. Returns None for unknown names."""
        return self._connectors.get(name.strip().casefold())

    def resolve(self, name: str) -> Optional[Connector]:
        """Resolve a user-supplied name to a catalog connector.

        Tries, in order: exact name, alias, a catalog name mentioned inside
        ``name``, then the first catalog name containing ``name``.

        Args:
            name: Name as the user or classifier wrote it.

        Returns:
            Matching Connector, or None.
        """
        exact = self.lookup(name)
        if exact is not None:
            return exact

        needle = name.strip().casefold()
        if not needle:
            return None
        aliased = self._aliases.get(needle)
        if aliased is not None:
            return aliased

        mentions = self.find_mentions(name)
        if mentions:
            return mentions[0]

        if len(needle) < _MIN_PARTIAL_LENGTH:
            return None
        for connector in self._connectors.values():
            if needle in connector.name.casefold():
                return connector
        return None

    def categorize(self, name: str) -> ConnectorCategory:
        """Category for any name, catalog member or not."""
        return categorize(name)

    def all(self) -> tuple[Connector, ...]:
        return tuple(self._connectors.values())

    def names(self) -> list[str]:
        return [c.name for c in self._connectors.values()]

    def by_category(self, category: ConnectorCategory) -> list[Connector]:
        return [c for c in self._connectors.values() if c.category == category]

    def find_mentions(self, text: str) -> list[Connector]:
        """Find connectors named (or aliased) in free text.

        Args:
            text: User utterance.

        Returns:
            Distinct connectors in order of first appearance. Where matches
            overlap, the longest one wins.
        """
        spans: list[tuple[int, int, Connector]] = []
        for pattern, connector in self._mention_patterns:
            for match in pattern.finditer(text):
                start, end = match.span()
                if any(start < s_end and s_start < end for s_start, s_end, _ in spans):
                    continue
                spans.append((start, end, connector))

        found: list[Connector] = []
        for _, _, connector in sorted(spans, key=lambda span: span[0]):
            if connector not in found:
                found.append(connector)
        return found

    def custom_connector(self, name: str) -> Connector:
        """Build a connector for a name outside the catalog.

        Custom connectors take their category's credential fields but are
        allowed at either end of the pipeline.
        """
        category = categorize(name)
        return Connector(
            name=name.strip(),
            category=category,
            credentials=CATEGORY_CREDENTIALS[category],
            custom=True,
        )

    def lookup_transform(self, name: str, partial: bool = True) -> Optional[BuiltinTransform]:
        """Find a built-in transform by name.

        Exact (case-insensitive) first, then, when ``partial`` is set, a
        transform whose name contains ``name`` or is contained in it
        ("enrich" -> "Enrich & Map").
        """
        needle = name.strip().casefold()
        exact = self._transforms.get(needle)
        if exact is not None or not partial or len(needle) < _MIN_PARTIAL_LENGTH:
            return exact
        for key, transform in self._transforms.items():
            if needle in key or key in needle:
                return transform
        return None

    def transforms(self) -> tuple[BuiltinTransform, ...]:
        return BUILTIN_TRANSFORMS


def get_default_registry() -> ConnectorRegistry:
    """Return the shared registry loaded from the packaged catalog."""
    return ConnectorRegistry.get_instance()
