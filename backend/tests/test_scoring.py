"""Tests for risk scoring, compliance scoring and risk classification."""

import itertools
from decimal import Decimal

import pytest

from claim_compliance.enums import CATEGORY_ORDER, RiskLevel, ValidationCategory, ValidationStatus
from claim_compliance.services.scoring_engine import ScoringEngine
from claim_compliance.validators import CategoryResult

S = ValidationStatus
C = ValidationCategory


def _results(overrides: dict | None = None, **details_by_category) -> dict:
    overrides = overrides or {}
    results = {}
    for category in CATEGORY_ORDER:
        status = overrides.get(category, S.PASS)
        results[category] = CategoryResult(
            category=category,
            status=status,
            issues=(f"{category.value} issue",) if status in (S.FAILED, S.REVIEW_REQUIRED) else (),
            warnings=(f"{category.value} warning",) if status == S.WARNING else (),
            details=details_by_category.get(category.value, {}),
        )
    return results


@pytest.fixture
def scoring(catalog) -> ScoringEngine:
    return ScoringEngine(catalog)


class TestRiskScore:
    def test_clean_claim_scores_zero(self, scoring):
        results = _results()
        assert scoring.risk_score(results) == Decimal("0")
        assert scoring.classify_risk(scoring.risk_score(results)) == RiskLevel.LOW
        assert scoring.risk_factors(results) == []

    def test_everything_failed_scores_100(self, scoring):
        results = _results({c: S.FAILED for c in CATEGORY_ORDER})
        assert scoring.risk_score(results) == Decimal("100")
        assert scoring.classify_risk(scoring.risk_score(results)) == RiskLevel.CRITICAL

    def test_weighted_points(self, scoring):
        # 0.20 × 100 + 0.15 × 50 + 0.10 × 65 = 34.0
        results = _results({C.TIMELY_FILING: S.FAILED, C.FREQUENCY_LIMITS: S.WARNING,
                            C.CLAIM_COMPLETENESS: S.REVIEW_REQUIRED})
        assert scoring.risk_score(results) == Decimal("34.00")

    def test_all_status_combinations_stay_in_bounds(self, scoring):
        for combo in itertools.product(list(S), repeat=len(CATEGORY_ORDER)):
            results = _results(dict(zip(CATEGORY_ORDER, combo)))
            assert Decimal("0") <= scoring.risk_score(results) <= Decimal("100")
            assert Decimal("0") <= scoring.compliance_score(results) <= Decimal("100")


class TestClassification:
    @pytest.mark.parametrize("score, expected", [
        (0, RiskLevel.LOW),
        (39.99, RiskLevel.LOW),
        (40, RiskLevel.MEDIUM),
        (69.99, RiskLevel.MEDIUM),
        (70, RiskLevel.HIGH),
        (89.99, RiskLevel.HIGH),
        (90, RiskLevel.CRITICAL),
        (100, RiskLevel.CRITICAL),
    ])
    def test_thresholds(self, scoring, score, expected):
        assert scoring.classify_risk(score) == expected

    def test_monotonic(self, scoring):
        previous = RiskLevel.LOW
        for step in range(0, 10001):
            level = scoring.classify_risk(Decimal(step) / 100)
            assert level.rank >= previous.rank
            previous = level


class TestRiskFactors:
    def test_one_factor_per_non_pass_category(self, scoring):
        results = _results({C.MEDICAL_NECESSITY: S.WARNING, C.PAYER_COMPLIANCE: S.FAILED})
        factors = scoring.risk_factors(results)
        assert [f.category for f in factors] == [C.PAYER_COMPLIANCE, C.MEDICAL_NECESSITY]
        assert factors[0].risk_level == RiskLevel.HIGH
        assert factors[1].risk_level == RiskLevel.LOW
        assert factors[0].description == "payer_compliance issue"

    def test_ties_broken_by_category_order(self, scoring):
        results = _results({C.PROVIDER_ENROLLMENT: S.FAILED, C.MEDICAL_NECESSITY: S.FAILED,
                            C.TIMELY_FILING: S.FAILED})
        factors = scoring.risk_factors(results)
        assert [f.category for f in factors] == [C.MEDICAL_NECESSITY, C.TIMELY_FILING, C.PROVIDER_ENROLLMENT]
        assert all(f.contribution == Decimal("20.00") for f in factors)

    def test_review_required_maps_to_medium(self, scoring):
        factors = scoring.risk_factors(_results({C.CLAIM_COMPLETENESS: S.REVIEW_REQUIRED}))
        assert factors[0].risk_level == RiskLevel.MEDIUM
        assert factors[0].contribution == Decimal("6.50")


class TestComplianceScore:
    def test_clean_claim_is_fully_compliant(self, scoring):
        assert scoring.compliance_score(_results()) == Decimal("100")

    def test_everything_failed_is_zero(self, scoring):
        assert scoring.compliance_score(_results({c: S.FAILED for c in CATEGORY_ORDER})) == Decimal("0")

    def test_penalty_uses_compliance_weights(self, scoring):
        # medical necessity weight 0.25 × warning penalty 20 = 5
        assert scoring.compliance_score(_results({C.MEDICAL_NECESSITY: S.WARNING})) == Decimal("95.00")

    def test_completeness_shortfall_counts_even_when_passing(self, scoring):
        results = _results(claim_completeness={"completeness_score": 90.0})
        assert scoring.compliance_score(results) == Decimal("99.00")

    def test_completeness_status_penalty_when_larger(self, scoring):
        results = _results({C.CLAIM_COMPLETENESS: S.REVIEW_REQUIRED},
                           claim_completeness={"completeness_score": 80.0})
        # max(50, 20) × 0.10 = 5
        assert scoring.compliance_score(results) == Decimal("95.00")

    def test_risk_and_compliance_diverge(self, scoring):
        results = _results({C.MEDICAL_NECESSITY: S.FAILED})
        assert scoring.risk_score(results) == Decimal("20.00")
        assert scoring.compliance_score(results) == Decimal("75.00")
