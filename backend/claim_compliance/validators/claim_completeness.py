"""Claim completeness validator: payer-agnostic checklist scored as a percentage."""

import re
from datetime import datetime
from typing import Callable

from claim_compliance.catalog.models import RuleCatalog
from claim_compliance.enums import ValidationCategory, ValidationStatus
from claim_compliance.schemas.claim import ClaimSnapshot, is_present
from claim_compliance.validators.base import BaseValidator, CategoryResult


def _all_lines(claim: ClaimSnapshot, check: Callable) -> bool:
    return bool(claim.service_lines) and all(check(line) for line in claim.service_lines)


def checklist(procedure_pattern: str) -> dict[str, Callable[[ClaimSnapshot], bool]]:
    """Checklist elements in report order."""
    valid_code = re.compile(procedure_pattern)
    return {
        "Patient identity": lambda c: is_present(c.patient.patient_id)
        or (is_present(c.patient.first_name) and is_present(c.patient.last_name)),
        "Patient date of birth": lambda c: c.patient.date_of_birth is not None,
        "Provider NPI": lambda c: is_present(c.provider.npi),
        "Payer information": lambda c: is_present(c.payer.name) and is_present(c.payer.member_id),
        "Valid procedure codes": lambda c: _all_lines(
            c, lambda line: bool(line.procedure_code) and valid_code.match(line.procedure_code) is not None
        ),
        "Service dates": lambda c: _all_lines(c, lambda line: line.service_date is not None),
        "Diagnosis codes": lambda c: is_present(c.diagnoses),
        "Charge amounts": lambda c: _all_lines(
            c, lambda line: line.charge_amount is not None and line.charge_amount >= 0
        ),
        "Place of service": lambda c: _all_lines(c, lambda line: is_present(line.place_of_service)),
        "Provider taxonomy": lambda c: is_present(c.provider.taxonomy_code),
    }


class ClaimCompletenessValidator(BaseValidator):
    category = ValidationCategory.CLAIM_COMPLETENESS

    def validate(self, claim: ClaimSnapshot, catalog: RuleCatalog, now: datetime) -> CategoryResult:
        rules = catalog.claim_completeness
        elements = checklist(rules.procedure_code_pattern)

        missing = [name for name, check in elements.items() if not check(claim)]
        present = len(elements) - len(missing)
        score = round(present / len(elements) * 100, 2)

        status = ValidationStatus.PASS if score >= rules.pass_threshold else ValidationStatus.REVIEW_REQUIRED
        issues = [f"Missing or invalid claim element: {name}" for name in missing]

        return self._result(
            issues, [], status=status,
            completeness_score=score,
            missing_elements=missing,
        )
