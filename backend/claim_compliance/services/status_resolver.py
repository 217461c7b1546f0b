"""
Overall Status Resolver

Reduces the six category statuses to one terminal status by fixed
precedence (first match wins):
  1. a mandatory category (provider enrollment, timely filing) failed -> failed
  2. any category failed                                             -> failed
  3. any category review_required                                    -> review_required
  4. any category warning                                            -> warning
  5. otherwise                                                       -> pass
"""

from collections.abc import Mapping

from claim_compliance.enums import (
    CATEGORY_ORDER,
    MANDATORY_CATEGORIES,
    ValidationCategory,
    ValidationStatus,
)

COMPLIANT = "compliant"
NON_COMPLIANT = "non_compliant"
PENDING = "pending"

_BUCKETS = {
    ValidationStatus.PASS: COMPLIANT,
    ValidationStatus.WARNING: COMPLIANT,
    ValidationStatus.FAILED: NON_COMPLIANT,
    ValidationStatus.REVIEW_REQUIRED: PENDING,
}


def resolve_overall_status(statuses: Mapping[ValidationCategory, ValidationStatus]) -> ValidationStatus:
    missing = [c.value for c in CATEGORY_ORDER if c not in statuses]
    if missing:
        raise ValueError(f"Missing category results: {', '.join(missing)}")

    if any(statuses[c] == ValidationStatus.FAILED for c in MANDATORY_CATEGORIES):
        return ValidationStatus.FAILED
    for status in (ValidationStatus.FAILED, ValidationStatus.REVIEW_REQUIRED, ValidationStatus.WARNING):
        if any(statuses[c] == status for c in CATEGORY_ORDER):
            return status
    return ValidationStatus.PASS


def compliance_bucket(status: ValidationStatus) -> str:
    """Monitoring bucket for an overall status: compliant, non_compliant or pending."""
    return _BUCKETS[status]
