"""Timely filing validator: days elapsed since the earliest service date vs. the payer's limit."""

from datetime import datetime, timedelta

from claim_compliance.catalog.models import RuleCatalog
from claim_compliance.enums import ValidationCategory
from claim_compliance.schemas.claim import ClaimSnapshot
from claim_compliance.validators.base import BaseValidator, CategoryResult


class TimelyFilingValidator(BaseValidator):
    category = ValidationCategory.TIMELY_FILING

    def validate(self, claim: ClaimSnapshot, catalog: RuleCatalog, now: datetime) -> CategoryResult:
        payer_type = catalog.resolve_payer_type(claim.payer.name)
        limit = catalog.filing_limit_for(payer_type)
        buffer_days = catalog.timely_filing.warning_buffer_days

        service_date = claim.earliest_service_date
        if service_date is None:
            return self._result(
                ["No service date on claim; filing deadline cannot be determined"], [],
                payer_type=payer_type, limit_days=limit.limit_days,
                service_date=None, filing_deadline=None,
                days_elapsed=None, days_remaining=None, exceptions=[],
            )

        days_elapsed = (now.date() - service_date).days
        days_remaining = limit.limit_days - days_elapsed
        deadline = service_date + timedelta(days=limit.limit_days)

        issues: list[str] = []
        warnings: list[str] = []
        exceptions: list[str] = []
        if days_elapsed > limit.limit_days:
            issues.append(
                f"Timely filing limit exceeded: {days_elapsed} days since service, "
                f"{payer_type} limit is {limit.limit_days} days ({limit.description})"
            )
            exceptions = list(limit.exceptions)
        elif days_elapsed > limit.limit_days - buffer_days:
            warnings.append(
                f"Filing deadline approaching: {days_remaining} days remaining "
                f"(deadline {deadline.isoformat()})"
            )

        return self._result(
            issues, warnings,
            payer_type=payer_type,
            limit_days=limit.limit_days,
            service_date=service_date.isoformat(),
            filing_deadline=deadline.isoformat(),
            days_elapsed=days_elapsed,
            days_remaining=days_remaining,
            exceptions=exceptions,
        )
