"""
Validation Engine

Runs the six category validators against one claim snapshot, then scores,
resolves the overall status and attaches recommendations. A validator that
raises is isolated: its category becomes review_required and the other
categories still run.
"""

import hashlib
import json
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from types import MappingProxyType

from claim_compliance.catalog.models import RuleCatalog
from claim_compliance.clock import Clock, SystemClock
from claim_compliance.enums import CATEGORY_ORDER, ValidationCategory, ValidationStatus
from claim_compliance.schemas.claim import ClaimSnapshot
from claim_compliance.services.pattern_detection import FactorObservation, detect_patterns
from claim_compliance.services.recommendations import generate_recommendations
from claim_compliance.services.scoring_engine import RiskAssessment, ScoringEngine
from claim_compliance.services.status_resolver import resolve_overall_status
from claim_compliance.telemetry import metrics
from claim_compliance.telemetry.run_context import run_scope
from claim_compliance.validators import BaseValidator, CategoryResult, all_validators

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ValidationReport:
    """Terminal per-claim artifact. Persisting it is the caller's job."""
    claim_id: str
    catalog_version: str
    validated_at: datetime
    overall_status: ValidationStatus
    compliance_score: Decimal
    validation_categories: Mapping[ValidationCategory, CategoryResult]
    risk_assessment: RiskAssessment
    recommendations: tuple[str, ...]
    fingerprint: str

    def __post_init__(self):
        object.__setattr__(self, "validation_categories", MappingProxyType(dict(self.validation_categories)))

    def category(self, category: ValidationCategory) -> CategoryResult:
        return self.validation_categories[category]

    def factor_observations(self) -> list[FactorObservation]:
        return [
            FactorObservation(
                claim_id=self.claim_id,
                category=factor.category,
                risk_level=factor.risk_level,
                observed_at=self.validated_at,
            )
            for factor in self.risk_assessment.risk_factors
        ]

    def to_dict(self) -> dict:
        return {
            "claim_id": self.claim_id,
            "catalog_version": self.catalog_version,
            "validated_at": self.validated_at.isoformat(),
            "overall_status": self.overall_status.value,
            "compliance_score": float(self.compliance_score),
            "validation_categories": {
                c.value: self.validation_categories[c].to_dict() for c in CATEGORY_ORDER
            },
            "risk_assessment": self.risk_assessment.to_dict(),
            "recommendations": list(self.recommendations),
            "fingerprint": self.fingerprint,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), sort_keys=True, default=str)


def report_fingerprint(claim: ClaimSnapshot, catalog_version: str, validated_at: datetime) -> str:
    """SHA-256 of the canonical snapshot + catalog version + validation instant."""
    payload = {
        "claim": json.loads(claim.canonical_json()),
        "catalog_version": catalog_version,
        "validated_at": validated_at.isoformat(),
    }
    raw = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(raw.encode()).hexdigest()


class ValidationEngine:
    """Orchestrates category validation, scoring and status resolution for one claim."""

    def __init__(
        self,
        catalog: RuleCatalog,
        clock: Clock | None = None,
        validators: list[BaseValidator] | None = None,
    ):
        self.catalog = catalog
        self.clock = clock or SystemClock()
        self.validators = validators if validators is not None else all_validators()
        covered = {v.category for v in self.validators}
        missing = [c.value for c in CATEGORY_ORDER if c not in covered]
        if missing or len(self.validators) != len(CATEGORY_ORDER):
            raise ValueError(f"Validation engine needs exactly one validator per category; missing: {missing}")
        self.scoring = ScoringEngine(catalog)

    def _run_validator(self, validator: BaseValidator, claim: ClaimSnapshot, now: datetime) -> CategoryResult:
        try:
            return validator.validate(claim, self.catalog, now)
        except Exception as e:
            # Log but don't crash the pipeline
            logger.exception("Validator %s failed on claim %s", validator.category.value, claim.claim_id)
            metrics.validator_errors_total.labels(category=validator.category.value).inc()
            return CategoryResult(
                category=validator.category,
                status=ValidationStatus.REVIEW_REQUIRED,
                issues=(f"{validator.category.label} validation could not be completed: {str(e)[:200]}",),
                details={"error": type(e).__name__},
            )

    def validate(self, claim: ClaimSnapshot, recent_reports: list[ValidationReport] | tuple = ()) -> ValidationReport:
        """Validate one snapshot. `recent_reports` feed per-claim pattern detection only."""
        with run_scope():
            start = time.perf_counter()
            now = self.clock.now()

            results = {v.category: self._run_validator(v, claim, now) for v in self.validators}
            for result in results.values():
                metrics.category_results_total.labels(
                    category=result.category.value, status=result.status.value,
                ).inc()

            risk_score = self.scoring.risk_score(results)
            overall_risk = self.scoring.classify_risk(risk_score)
            factors = self.scoring.risk_factors(results)
            compliance_score = self.scoring.compliance_score(results)
            overall_status = resolve_overall_status({c: r.status for c, r in results.items()})
            recommendations = generate_recommendations(factors, overall_risk)

            observations = [
                FactorObservation(claim.claim_id, f.category, f.risk_level, now) for f in factors
            ]
            for report in recent_reports:
                if report.validated_at <= now:
                    observations.extend(report.factor_observations())
            window_start = min((o.observed_at for o in observations), default=now)
            monitoring = self.catalog.monitoring
            patterns = detect_patterns(
                observations, window_start, now,
                min_occurrences=monitoring.pattern_min_occurrences,
                change_ratio=monitoring.pattern_change_ratio,
            )

            assessment = RiskAssessment(
                overall_risk=overall_risk,
                risk_score=risk_score,
                risk_factors=tuple(factors),
                patterns_detected=tuple(patterns),
                recommendations=tuple(recommendations),
            )
            report = ValidationReport(
                claim_id=claim.claim_id,
                catalog_version=self.catalog.version,
                validated_at=now,
                overall_status=overall_status,
                compliance_score=compliance_score,
                validation_categories={c: results[c] for c in CATEGORY_ORDER},
                risk_assessment=assessment,
                recommendations=tuple(recommendations),
                fingerprint=report_fingerprint(claim, self.catalog.version, now),
            )

            duration = time.perf_counter() - start
            metrics.claim_validations_total.labels(overall_status=overall_status.value).inc()
            metrics.claim_validation_duration_seconds.observe(duration)
            logger.info(
                "Validated claim %s: %s (risk %s/%s, compliance %s)",
                claim.claim_id, overall_status.value, risk_score, overall_risk.value, compliance_score,
                extra={"duration_ms": round(duration * 1000, 2), "claim_id": claim.claim_id},
            )
            return report
