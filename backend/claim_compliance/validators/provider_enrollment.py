"""Provider enrollment validator: billable status and service dates on or after enrollment."""

from datetime import datetime

from claim_compliance.catalog.models import RuleCatalog
from claim_compliance.enums import ValidationCategory, ValidationStatus
from claim_compliance.schemas.claim import ClaimSnapshot
from claim_compliance.validators.base import BaseValidator, CategoryResult


class ProviderEnrollmentValidator(BaseValidator):
    category = ValidationCategory.PROVIDER_ENROLLMENT

    def validate(self, claim: ClaimSnapshot, catalog: RuleCatalog, now: datetime) -> CategoryResult:
        provider = claim.provider
        issues: list[str] = []
        warnings: list[str] = []
        failed = False
        needs_review = False
        can_bill: bool | None = None

        raw_status = (provider.enrollment_status or "").strip().lower()
        if not raw_status:
            needs_review = True
            issues.append("Provider enrollment status missing")
        else:
            rule = catalog.provider_enrollment.statuses.get(raw_status)
            if rule is None:
                needs_review = True
                issues.append(f"Unrecognised provider enrollment status '{provider.enrollment_status}'")
            else:
                can_bill = rule.can_bill
                if not rule.can_bill:
                    failed = True
                    issues.append(f"Provider enrollment status '{raw_status}' is not billable: {rule.description}")

        if provider.enrollment_date is None:
            warnings.append("Provider enrollment date missing")
        else:
            early = sorted({
                line.service_date for line in claim.service_lines
                if line.service_date and line.service_date < provider.enrollment_date
            })
            if early:
                failed = True
                issues.append(
                    f"Service date {early[0].isoformat()} precedes provider enrollment date "
                    f"{provider.enrollment_date.isoformat()}"
                )

        if failed:
            status = ValidationStatus.FAILED
        elif needs_review:
            status = ValidationStatus.REVIEW_REQUIRED
        else:
            status = None

        return self._result(
            issues, warnings, status=status,
            enrollment_status=raw_status or None,
            enrollment_date=provider.enrollment_date.isoformat() if provider.enrollment_date else None,
            can_bill=can_bill,
        )
