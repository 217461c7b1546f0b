from claim_compliance.catalog.loader import (
    CatalogError,
    CatalogRegistry,
    configured_catalog,
    default_catalog,
    load_catalog,
)
from claim_compliance.catalog.models import RuleCatalog

__all__ = [
    "CatalogError", "CatalogRegistry", "RuleCatalog",
    "configured_catalog", "default_catalog", "load_catalog",
]
