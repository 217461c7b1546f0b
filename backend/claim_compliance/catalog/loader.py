"""
Catalog loading and version registry.

A catalog that fails validation is fatal: the engine refuses to run on it.
"""

import json
import logging
from collections.abc import Mapping
from pathlib import Path

from pydantic import ValidationError

from claim_compliance.catalog.defaults import DEFAULT_CATALOG
from claim_compliance.catalog.models import RuleCatalog

logger = logging.getLogger(__name__)


class CatalogError(ValueError):
    """Raised for an inconsistent, unreadable or unknown rule catalog."""


def load_catalog(source: Mapping | str | Path) -> RuleCatalog:
    """Build a validated catalog from a mapping or a JSON file path."""
    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise CatalogError(f"Cannot read rule catalog {path}: {exc}") from exc
    else:
        data = source

    try:
        catalog = RuleCatalog.model_validate(data)
    except ValidationError as exc:
        raise CatalogError(f"Invalid rule catalog: {exc}") from exc

    logger.info("Loaded rule catalog version %s", catalog.version)
    return catalog


def default_catalog() -> RuleCatalog:
    return load_catalog(DEFAULT_CATALOG)


def configured_catalog(catalog_path: str | None = None, catalog_version: str | None = None) -> RuleCatalog:
    """Catalog named by settings: the JSON file when a path is set, else the built-in one."""
    catalog = load_catalog(catalog_path) if catalog_path else default_catalog()
    if catalog_version and catalog.version != catalog_version:
        raise CatalogError(
            f"Configured catalog version {catalog_version} does not match loaded version {catalog.version}"
        )
    return catalog


class CatalogRegistry:
    """Holds loaded catalog versions; the most recently registered is `latest`."""

    def __init__(self):
        self._catalogs: dict[str, RuleCatalog] = {}
        self._latest: str | None = None

    def register(self, catalog: RuleCatalog) -> RuleCatalog:
        existing = self._catalogs.get(catalog.version)
        if existing is not None and existing != catalog:
            raise CatalogError(f"Catalog version {catalog.version} already registered with different rules")
        self._catalogs[catalog.version] = catalog
        self._latest = catalog.version
        return catalog

    def get(self, version: str) -> RuleCatalog:
        try:
            return self._catalogs[version]
        except KeyError:
            raise CatalogError(f"Catalog version {version} not found") from None

    def latest(self) -> RuleCatalog:
        if self._latest is None:
            raise CatalogError("No rule catalog registered")
        return self._catalogs[self._latest]

    def versions(self) -> list[str]:
        return sorted(self._catalogs)
