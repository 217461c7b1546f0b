"""Claims compliance validation and risk scoring engine."""

from claim_compliance.catalog import configured_catalog
from claim_compliance.config import settings
from claim_compliance.telemetry.logging_config import configure_logging


def bootstrap():
    """Configure logging from settings and load the configured rule catalog."""
    configure_logging(settings.log_level, json_logs=settings.json_logs)
    return configured_catalog(settings.catalog_path, settings.catalog_version)
