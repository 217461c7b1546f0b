"""Tests for rule catalog loading, validation and the version registry."""

import copy
import json
from decimal import Decimal

import pytest
from pydantic import ValidationError

from claim_compliance.catalog import (
    CatalogError,
    CatalogRegistry,
    configured_catalog,
    default_catalog,
    load_catalog,
)
from claim_compliance.catalog.defaults import DEFAULT_CATALOG
from claim_compliance.enums import CATEGORY_ORDER, ValidationCategory


def _catalog_data() -> dict:
    return copy.deepcopy(DEFAULT_CATALOG)


# ── Default catalog ──────────────────────────────────────────────────────────

class TestDefaultCatalog:
    def test_loads_with_version(self, catalog):
        assert catalog.version == "2024.1"
        assert catalog.default_payer_type == "Commercial"

    def test_weights_sum_to_exactly_one(self, catalog):
        for weights in (catalog.scoring.risk_weights, catalog.scoring.compliance_weights):
            assert set(weights) == set(CATEGORY_ORDER)
            assert sum(Decimal(str(w)) for w in weights.values()) == Decimal("1")

    def test_risk_weights_match_category_table(self, catalog):
        weights = catalog.scoring.risk_weights
        assert weights[ValidationCategory.MEDICAL_NECESSITY] == 0.20
        assert weights[ValidationCategory.PROVIDER_ENROLLMENT] == 0.20
        assert weights[ValidationCategory.CLAIM_COMPLETENESS] == 0.10

    def test_catalog_is_frozen(self, catalog):
        with pytest.raises(ValidationError):
            catalog.version = "tampered"

    def test_lookup_helpers(self, catalog):
        assert catalog.frequency_limits.daily_for("97110").max_per_day == 4
        assert catalog.frequency_limits.lifetime_for("27447").max_lifetime == 2
        assert catalog.frequency_limits.annual_for("00000") is None
        assert catalog.medical_necessity.gender_restriction_for("77067").required_gender == "F"
        assert catalog.medical_necessity.age_restriction_for("99401").max_age == 64


# ── Payer resolution ─────────────────────────────────────────────────────────

class TestPayerResolution:
    @pytest.mark.parametrize("name, expected", [
        ("Medicare Part B", "Medicare"),
        ("MEDICARE ADVANTAGE", "Medicare"),
        ("State Medicaid Program", "Medicaid"),
        ("TRICARE West", "TRICARE"),
        ("Ohio Workers Comp Bureau", "Workers_Compensation"),
        ("Aetna", "Commercial"),
        ("", "Commercial"),
        (None, "Commercial"),
    ])
    def test_resolve_payer_type(self, catalog, name, expected):
        assert catalog.resolve_payer_type(name) == expected

    def test_unknown_payer_type_falls_back_to_commercial_rules(self, catalog):
        assert catalog.filing_limit_for("Unknown").limit_days == 180
        assert catalog.requirements_for("Unknown") == catalog.payer_requirements["Commercial"]


# ── Load-time validation ─────────────────────────────────────────────────────

class TestCatalogValidation:
    def test_weights_not_summing_to_one_rejected(self):
        data = _catalog_data()
        data["scoring"]["risk_weights"]["medical_necessity"] = 0.25
        with pytest.raises(CatalogError, match="sum to 1.0"):
            load_catalog(data)

    def test_weights_are_not_normalised(self):
        data = _catalog_data()
        data["scoring"]["compliance_weights"] = {k: v * 2 for k, v in data["scoring"]["compliance_weights"].items()}
        with pytest.raises(CatalogError):
            load_catalog(data)

    def test_missing_category_weight_rejected(self):
        data = _catalog_data()
        del data["scoring"]["risk_weights"]["claim_completeness"]
        data["scoring"]["risk_weights"]["payer_compliance"] = 0.25
        with pytest.raises(CatalogError, match="missing categories"):
            load_catalog(data)

    def test_unknown_category_rejected(self):
        data = _catalog_data()
        data["scoring"]["risk_weights"]["billing_magic"] = 0.0
        with pytest.raises(CatalogError):
            load_catalog(data)

    def test_non_monotonic_risk_thresholds_rejected(self):
        data = _catalog_data()
        data["scoring"]["risk_thresholds"] = {"critical": 60, "high": 70, "medium": 40}
        with pytest.raises(CatalogError, match="critical > high > medium"):
            load_catalog(data)

    def test_non_monotonic_alert_severity_rejected(self):
        data = _catalog_data()
        data["monitoring"]["alert_severity"]["low"]["threshold"] = 50
        with pytest.raises(CatalogError):
            load_catalog(data)

    def test_non_monotonic_compliance_levels_rejected(self):
        data = _catalog_data()
        data["monitoring"]["compliance_levels"] = {"excellent": 80, "good": 85, "fair": 75, "poor": 60}
        with pytest.raises(CatalogError):
            load_catalog(data)

    def test_invalid_regex_rejected(self):
        data = _catalog_data()
        data["medical_necessity"]["high_risk_combinations"][0]["diagnosis_pattern"] = "^Z51[("
        with pytest.raises(CatalogError, match="invalid regex"):
            load_catalog(data)

    def test_unknown_required_field_label_rejected(self):
        data = _catalog_data()
        data["payer_requirements"]["Medicare"]["required_fields"].append("Favourite Colour")
        with pytest.raises(CatalogError, match="Favourite Colour"):
            load_catalog(data)

    def test_missing_commercial_rules_rejected(self):
        data = _catalog_data()
        del data["timely_filing"]["limits"]["Commercial"]
        with pytest.raises(CatalogError, match="Commercial"):
            load_catalog(data)

    def test_negative_limit_rejected(self):
        data = _catalog_data()
        data["frequency_limits"]["daily_limits"][0]["max_per_day"] = -1
        with pytest.raises(CatalogError):
            load_catalog(data)

    def test_age_bracket_min_above_max_rejected(self):
        data = _catalog_data()
        data["frequency_limits"]["age_based_limits"][0]["age_ranges"][0] = {
            "min_age": 60, "max_age": 50, "max_per_year": 1,
        }
        with pytest.raises(CatalogError):
            load_catalog(data)

    def test_unknown_tracked_metric_rejected(self):
        data = _catalog_data()
        data["monitoring"]["tracked_metrics"].append({"metric": "happiness", "title": "Happiness"})
        with pytest.raises(CatalogError):
            load_catalog(data)


# ── File loading & registry ──────────────────────────────────────────────────

class TestCatalogSources:
    def test_load_from_json_file(self, tmp_path):
        data = _catalog_data()
        data["version"] = "2024.2"
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps(data))

        catalog = load_catalog(path)
        assert catalog.version == "2024.2"
        assert catalog.filing_limit_for("Medicare").limit_days == 365

    def test_unreadable_file_raises_catalog_error(self, tmp_path):
        with pytest.raises(CatalogError, match="Cannot read"):
            load_catalog(tmp_path / "missing.json")

    def test_malformed_json_raises_catalog_error(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(CatalogError):
            load_catalog(path)

    def test_catalog_error_is_value_error(self):
        assert issubclass(CatalogError, ValueError)

    def test_configured_catalog_version_pin(self):
        assert configured_catalog(None, "2024.1").version == "2024.1"
        with pytest.raises(CatalogError, match="does not match"):
            configured_catalog(None, "1999.1")


class TestCatalogRegistry:
    def test_register_get_latest(self):
        registry = CatalogRegistry()
        first = registry.register(default_catalog())
        data = _catalog_data()
        data["version"] = "2024.2"
        second = registry.register(load_catalog(data))

        assert registry.get("2024.1") is first
        assert registry.latest() is second
        assert registry.versions() == ["2024.1", "2024.2"]

    def test_unknown_version_raises(self):
        registry = CatalogRegistry()
        registry.register(default_catalog())
        with pytest.raises(CatalogError, match="not found"):
            registry.get("1999.1")

    def test_empty_registry_has_no_latest(self):
        with pytest.raises(CatalogError):
            CatalogRegistry().latest()

    def test_conflicting_reregistration_rejected(self):
        registry = CatalogRegistry()
        registry.register(default_catalog())
        data = _catalog_data()
        data["timely_filing"]["warning_buffer_days"] = 10
        with pytest.raises(CatalogError, match="already registered"):
            registry.register(load_catalog(data))
