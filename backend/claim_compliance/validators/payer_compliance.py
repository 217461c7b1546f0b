"""Payer compliance validator: payer-type required fields and modifier rules."""

from datetime import datetime

from claim_compliance.catalog.models import RuleCatalog
from claim_compliance.enums import ValidationCategory
from claim_compliance.schemas.claim import ClaimSnapshot, field_present
from claim_compliance.validators.base import BaseValidator, CategoryResult


class PayerComplianceValidator(BaseValidator):
    category = ValidationCategory.PAYER_COMPLIANCE

    def validate(self, claim: ClaimSnapshot, catalog: RuleCatalog, now: datetime) -> CategoryResult:
        payer_type = catalog.resolve_payer_type(claim.payer.name)
        requirement = catalog.requirements_for(payer_type)
        issues: list[str] = []
        warnings: list[str] = []

        missing_fields = [label for label in requirement.required_fields if not field_present(claim, label)]
        for label in missing_fields:
            issues.append(f"{payer_type} requires {label}")

        modifier_findings: list[dict] = []
        for line in claim.service_lines:
            for rule in requirement.prohibited_modifiers:
                if line.procedure_code == rule.procedure_code and rule.modifier in line.modifiers:
                    issues.append(
                        f"Line {line.line_number}: modifier {rule.modifier} not allowed with "
                        f"{rule.procedure_code} for {payer_type} ({rule.reason})"
                    )
                    modifier_findings.append({"line_number": line.line_number, "procedure_code": rule.procedure_code,
                                              "modifier": rule.modifier, "rule": "prohibited"})
            for rule in requirement.required_modifiers:
                if line.procedure_code == rule.procedure_code and rule.modifier not in line.modifiers:
                    warnings.append(
                        f"Line {line.line_number}: {payer_type} expects modifier {rule.modifier} with "
                        f"{rule.procedure_code} ({rule.reason})"
                    )
                    modifier_findings.append({"line_number": line.line_number, "procedure_code": rule.procedure_code,
                                              "modifier": rule.modifier, "rule": "required"})

        return self._result(
            issues, warnings,
            payer_type=payer_type,
            missing_fields=missing_fields,
            modifier_findings=modifier_findings,
        )
