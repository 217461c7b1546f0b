from enum import Enum


class ValidationCategory(str, Enum):
    MEDICAL_NECESSITY = "medical_necessity"
    TIMELY_FILING = "timely_filing"
    PROVIDER_ENROLLMENT = "provider_enrollment"
    FREQUENCY_LIMITS = "frequency_limits"
    PAYER_COMPLIANCE = "payer_compliance"
    CLAIM_COMPLETENESS = "claim_completeness"

    @property
    def label(self) -> str:
        return _CATEGORY_LABELS[self]

    @property
    def order(self) -> int:
        return CATEGORY_ORDER.index(self)


_CATEGORY_LABELS = {
    ValidationCategory.MEDICAL_NECESSITY: "Medical necessity",
    ValidationCategory.TIMELY_FILING: "Timely filing",
    ValidationCategory.PROVIDER_ENROLLMENT: "Provider enrollment",
    ValidationCategory.FREQUENCY_LIMITS: "Frequency limits",
    ValidationCategory.PAYER_COMPLIANCE: "Payer compliance",
    ValidationCategory.CLAIM_COMPLETENESS: "Claim completeness",
}

CATEGORY_ORDER: tuple[ValidationCategory, ...] = tuple(ValidationCategory)

# Failure in either of these makes a claim unsubmittable.
MANDATORY_CATEGORIES = frozenset({
    ValidationCategory.PROVIDER_ENROLLMENT,
    ValidationCategory.TIMELY_FILING,
})


class ValidationStatus(str, Enum):
    PASS = "pass"
    WARNING = "warning"
    REVIEW_REQUIRED = "review_required"
    FAILED = "failed"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]


_RISK_RANK = {
    RiskLevel.LOW: 0,
    RiskLevel.MEDIUM: 1,
    RiskLevel.HIGH: 2,
    RiskLevel.CRITICAL: 3,
}


class AlertSeverity(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
