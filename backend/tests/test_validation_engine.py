"""End-to-end tests for the validation engine."""

import json
from datetime import date, timedelta
from decimal import Decimal

import pytest

from claim_compliance.enums import CATEGORY_ORDER, RiskLevel, ValidationCategory, ValidationStatus
from claim_compliance.schemas.claim import ProviderInfo
from claim_compliance.services.validation_engine import ValidationEngine
from claim_compliance.validators import BaseValidator, all_validators

S = ValidationStatus
C = ValidationCategory


class ExplodingValidator(BaseValidator):
    category = ValidationCategory.FREQUENCY_LIMITS

    def validate(self, claim, catalog, now):
        raise RuntimeError("history lookup table corrupted")


# ── End-to-end scenarios ─────────────────────────────────────────────────────

class TestScenarios:
    def test_late_medicare_claim_fails_timely_filing(self, engine, make_claim, make_line):
        served = date(2024, 6, 15) - timedelta(days=400)
        report = engine.validate(make_claim(service_lines=(make_line(service_date=served),)))
        assert report.category(C.TIMELY_FILING).status == S.FAILED
        assert report.overall_status == S.FAILED

    def test_clean_claim_passes(self, engine, make_claim):
        report = engine.validate(make_claim())
        assert report.category(C.PROVIDER_ENROLLMENT).status == S.PASS
        assert report.overall_status == S.PASS
        assert report.risk_assessment.risk_score == 0
        assert report.risk_assessment.overall_risk == RiskLevel.LOW
        assert report.compliance_score == Decimal("100")
        assert len(report.recommendations) >= 2

    def test_daily_unit_limit_breach(self, engine, make_claim, make_line):
        claim = make_claim(service_lines=(make_line(procedure_code="97110", units=5, authorization_number="PA-77"),))
        report = engine.validate(claim)
        frequency = report.category(C.FREQUENCY_LIMITS)
        assert frequency.status == S.FAILED
        assert any("Daily limit" in issue for issue in frequency.issues)
        assert report.overall_status == S.FAILED

    def test_medicare_claim_missing_npi(self, engine, make_claim):
        claim = make_claim(provider=ProviderInfo(taxonomy_code="207Q00000X", enrollment_status="active",
                                                 enrollment_date=date(2020, 1, 1)))
        report = engine.validate(claim)
        payer = report.category(C.PAYER_COMPLIANCE)
        assert payer.status == S.FAILED
        assert "NPI" in payer.details["missing_fields"]

    def test_every_category_failing_still_produces_report(self, engine, make_claim, make_line):
        claim = make_claim(
            provider=ProviderInfo(enrollment_status="terminated"),
            service_lines=(make_line(procedure_code="97110", units=9, service_date=date(2022, 1, 3),
                                     diagnosis_pointer=4, place_of_service=None, charge_amount=None),),
            diagnoses=(),
        )
        report = engine.validate(claim)
        assert report.overall_status == S.FAILED
        assert set(report.validation_categories) == set(CATEGORY_ORDER)
        assert 0 <= report.risk_assessment.risk_score <= 100
        assert 0 <= report.compliance_score <= 100
        assert report.risk_assessment.overall_risk in (RiskLevel.HIGH, RiskLevel.CRITICAL)


# ── Determinism ──────────────────────────────────────────────────────────────

class TestDeterminism:
    def test_same_snapshot_same_clock_is_byte_identical(self, catalog, clock, make_claim, make_line):
        claim = make_claim(service_lines=(make_line(procedure_code="99213"),))
        first = ValidationEngine(catalog, clock).validate(claim)
        second = ValidationEngine(catalog, clock).validate(claim)
        assert first == second
        assert first.to_json() == second.to_json()

    def test_fingerprint_depends_on_clock(self, catalog, clock, make_claim):
        claim = make_claim()
        first = ValidationEngine(catalog, clock).validate(claim)
        later = ValidationEngine(catalog, clock.advance(hours=1)).validate(claim)
        assert first.fingerprint != later.fingerprint

    def test_report_serializes_all_categories(self, engine, make_claim):
        data = json.loads(engine.validate(make_claim()).to_json())
        assert list(data["validation_categories"]) == sorted(c.value for c in CATEGORY_ORDER)
        assert data["overall_status"] == "pass"
        assert data["validation_categories"]["timely_filing"]["filing_deadline"] == "2025-05-20"
        assert data["validated_at"] == "2024-06-15T12:00:00+00:00"


# ── Crash isolation ──────────────────────────────────────────────────────────

class TestCrashIsolation:
    def test_crashing_validator_becomes_review_required(self, catalog, clock, make_claim):
        validators = [v for v in all_validators() if v.category != C.FREQUENCY_LIMITS] + [ExplodingValidator()]
        report = ValidationEngine(catalog, clock, validators).validate(make_claim())

        frequency = report.category(C.FREQUENCY_LIMITS)
        assert frequency.status == S.REVIEW_REQUIRED
        assert "could not be completed" in frequency.issues[0]
        assert frequency.details["error"] == "RuntimeError"
        for category in CATEGORY_ORDER:
            if category != C.FREQUENCY_LIMITS:
                assert report.category(category).status == S.PASS
        assert report.overall_status == S.REVIEW_REQUIRED

    def test_engine_requires_one_validator_per_category(self, catalog, clock):
        with pytest.raises(ValueError):
            ValidationEngine(catalog, clock, all_validators()[:5])


# ── Per-claim patterns ───────────────────────────────────────────────────────

class TestRecentReportPatterns:
    def test_recurring_category_detected_across_recent_reports(self, catalog, clock, make_claim):
        claim = make_claim(provider=ProviderInfo(npi="1234567893", taxonomy_code="207Q00000X",
                                                 enrollment_status="suspended"))
        earlier = ValidationEngine(catalog, clock.advance(days=-10)).validate(claim)
        report = ValidationEngine(catalog, clock).validate(claim, recent_reports=[earlier])

        patterns = report.risk_assessment.patterns_detected
        assert [p.pattern for p in patterns] == [C.PROVIDER_ENROLLMENT]
        assert patterns[0].frequency == 2
        assert patterns[0].affected_claims == 1

    def test_single_report_has_no_patterns(self, engine, make_claim):
        claim = make_claim(provider=ProviderInfo(npi="1234567893", enrollment_status="suspended"))
        assert engine.validate(claim).risk_assessment.patterns_detected == ()


# ── Immutability ─────────────────────────────────────────────────────────────

class TestReportImmutability:
    def test_category_mapping_is_read_only(self, engine, make_claim):
        report = engine.validate(make_claim())
        with pytest.raises(TypeError):
            report.validation_categories[C.TIMELY_FILING] = report.category(C.MEDICAL_NECESSITY)

    def test_category_details_are_read_only(self, engine, make_claim):
        result = engine.validate(make_claim()).category(C.TIMELY_FILING)
        with pytest.raises(TypeError):
            result.details["days_remaining"] = 999
        assert result.to_dict()["days_remaining"] == 339
