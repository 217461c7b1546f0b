"""
Risk & Compliance Scoring

Two independent scores over the same six category results:

  risk_score       = SUM(risk_weight × status_risk_points)            (0-100, higher is riskier)
  compliance_score = 100 - SUM(compliance_weight × status_penalty)    (0-100, higher is better)

For claim completeness the compliance penalty is the larger of its status
penalty and the checklist shortfall (100 - completeness_score). Both
scores are quantized to 0.01 and clamped to [0, 100].
"""

from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal

from claim_compliance.catalog.models import RuleCatalog
from claim_compliance.enums import CATEGORY_ORDER, RiskLevel, ValidationCategory, ValidationStatus
from claim_compliance.services.pattern_detection import Pattern
from claim_compliance.validators.base import CategoryResult

_CENT = Decimal("0.01")
_ZERO = Decimal("0")
_HUNDRED = Decimal("100")

# Category status -> risk factor level
FACTOR_LEVELS = {
    ValidationStatus.FAILED: RiskLevel.HIGH,
    ValidationStatus.REVIEW_REQUIRED: RiskLevel.MEDIUM,
    ValidationStatus.WARNING: RiskLevel.LOW,
}

FACTOR_IMPACT = {
    ValidationStatus.FAILED: "Claim will likely be denied or rejected",
    ValidationStatus.REVIEW_REQUIRED: "Claim requires manual review before submission",
    ValidationStatus.WARNING: "Elevated denial risk; correct before submission",
}


def _clamp(value: Decimal) -> Decimal:
    return min(max(value, _ZERO), _HUNDRED).quantize(_CENT)


@dataclass(frozen=True)
class RiskFactor:
    category: ValidationCategory
    description: str
    risk_level: RiskLevel
    impact: str
    contribution: Decimal   # points of risk_score attributable to this category

    def to_dict(self) -> dict:
        return {
            "category": self.category.value,
            "description": self.description,
            "risk_level": self.risk_level.value,
            "impact": self.impact,
            "contribution": float(self.contribution),
        }


@dataclass(frozen=True)
class RiskAssessment:
    overall_risk: RiskLevel
    risk_score: Decimal
    risk_factors: tuple[RiskFactor, ...] = ()
    patterns_detected: tuple[Pattern, ...] = ()
    recommendations: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "overall_risk": self.overall_risk.value,
            "risk_score": float(self.risk_score),
            "risk_factors": [f.to_dict() for f in self.risk_factors],
            "patterns_detected": [p.to_dict() for p in self.patterns_detected],
            "recommendations": list(self.recommendations),
        }


class ScoringEngine:
    """Calculates risk and compliance scores from category results."""

    def __init__(self, catalog: RuleCatalog):
        scoring = catalog.scoring
        self.risk_thresholds = scoring.risk_thresholds
        self._risk_weights = {c: Decimal(str(w)) for c, w in scoring.risk_weights.items()}
        self._risk_points = {s: Decimal(str(p)) for s, p in scoring.status_risk_points.items()}
        self._compliance_weights = {c: Decimal(str(w)) for c, w in scoring.compliance_weights.items()}
        self._penalties = {s: Decimal(str(p)) for s, p in scoring.status_compliance_penalty.items()}

    def classify_risk(self, score: Decimal | float) -> RiskLevel:
        """Classify a numeric score into a risk level."""
        score = float(score)
        if score >= self.risk_thresholds.critical:
            return RiskLevel.CRITICAL
        elif score >= self.risk_thresholds.high:
            return RiskLevel.HIGH
        elif score >= self.risk_thresholds.medium:
            return RiskLevel.MEDIUM
        else:
            return RiskLevel.LOW

    def contribution(self, result: CategoryResult) -> Decimal:
        return self._risk_weights[result.category] * self._risk_points[result.status]

    def risk_score(self, results: Mapping[ValidationCategory, CategoryResult]) -> Decimal:
        raw = sum((self.contribution(results[c]) for c in CATEGORY_ORDER), _ZERO)
        return _clamp(raw)

    def risk_factors(self, results: Mapping[ValidationCategory, CategoryResult]) -> list[RiskFactor]:
        """One factor per non-pass category, highest contribution first, ties by category order."""
        factors = []
        for category in CATEGORY_ORDER:
            result = results[category]
            if result.status == ValidationStatus.PASS:
                continue
            headline = (result.issues or result.warnings or (f"{category.label} status {result.status.value}",))[0]
            factors.append(RiskFactor(
                category=category,
                description=headline,
                risk_level=FACTOR_LEVELS[result.status],
                impact=FACTOR_IMPACT[result.status],
                contribution=self.contribution(result).quantize(_CENT),
            ))
        factors.sort(key=lambda f: (-f.contribution, f.category.order))
        return factors

    def compliance_score(self, results: Mapping[ValidationCategory, CategoryResult]) -> Decimal:
        penalty = _ZERO
        for category in CATEGORY_ORDER:
            result = results[category]
            category_penalty = self._penalties[result.status]
            if category == ValidationCategory.CLAIM_COMPLETENESS:
                completeness = result.details.get("completeness_score")
                if completeness is not None:
                    shortfall = _HUNDRED - Decimal(str(completeness))
                    category_penalty = max(category_penalty, shortfall)
            penalty += self._compliance_weights[category] * category_penalty
        return _clamp(_HUNDRED - penalty)
