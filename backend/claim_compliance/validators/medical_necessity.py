"""
Medical necessity validator.

Per service line: resolve the pointed diagnosis, then check high-risk
diagnosis/procedure combinations, prior authorization, and age/gender
restrictions from the catalog.
"""

from datetime import datetime

from claim_compliance.catalog.models import RuleCatalog
from claim_compliance.enums import ValidationCategory
from claim_compliance.schemas.claim import ClaimSnapshot
from claim_compliance.validators.base import BaseValidator, CategoryResult

_GENDER_ALIASES = {"F": "F", "FEMALE": "F", "M": "M", "MALE": "M"}


def _normalise_gender(value: str | None) -> str | None:
    if value is None or not value.strip():
        return None
    raw = value.strip().upper()
    return _GENDER_ALIASES.get(raw, raw)


class MedicalNecessityValidator(BaseValidator):
    category = ValidationCategory.MEDICAL_NECESSITY

    def validate(self, claim: ClaimSnapshot, catalog: RuleCatalog, now: datetime) -> CategoryResult:
        rules = catalog.medical_necessity
        issues: list[str] = []
        warnings: list[str] = []
        findings: list[dict] = []

        for line in claim.service_lines:
            code = line.procedure_code
            if not code:
                continue
            prefix = f"Line {line.line_number} ({code})"

            diagnosis = claim.diagnosis_for_pointer(line.diagnosis_pointer)
            if diagnosis is None:
                pointer = line.diagnosis_pointer if line.diagnosis_pointer is not None else 1
                issues.append(f"{prefix}: diagnosis pointer {pointer} does not resolve to a diagnosis code")
                findings.append({"line_number": line.line_number, "procedure_code": code,
                                 "rule": "diagnosis_pointer", "outcome": "issue"})

            # High-risk combinations
            if diagnosis is not None:
                for combo in rules.high_risk_combinations:
                    if not combo.matches(diagnosis.code, code):
                        continue
                    if combo.documentation_type in claim.documentation:
                        outcome = "ok"
                    elif claim.documentation:
                        outcome = "warning"
                        warnings.append(
                            f"{prefix}: {diagnosis.code} is a high-risk combination; "
                            f"attached documentation does not include {combo.documentation_type} "
                            f"({combo.requirement})"
                        )
                    else:
                        outcome = "issue"
                        issues.append(
                            f"{prefix}: {diagnosis.code} is a high-risk combination with no "
                            f"supporting documentation ({combo.requirement})"
                        )
                    findings.append({
                        "line_number": line.line_number, "procedure_code": code,
                        "diagnosis_code": diagnosis.code, "rule": "high_risk_combination",
                        "requirement": combo.requirement, "severity": combo.severity,
                        "outcome": outcome,
                    })

            # Prior authorization
            if code in rules.prior_auth_required:
                authorized = claim.has_authorization(line)
                if not authorized:
                    issues.append(f"{prefix}: prior authorization required but no authorization number provided")
                findings.append({"line_number": line.line_number, "procedure_code": code,
                                 "rule": "prior_authorization", "outcome": "ok" if authorized else "issue"})

            # Age restriction
            age_rule = rules.age_restriction_for(code)
            if age_rule is not None:
                age = claim.age_on(line.service_date)
                if age is None:
                    outcome = "issue"
                    issues.append(f"{prefix}: age-restricted procedure requires patient date of birth and service date")
                elif not age_rule.allows(age):
                    outcome = "issue"
                    issues.append(
                        f"{prefix}: patient age {age} outside allowed range {age_rule.range_label} "
                        f"({age_rule.requirement})"
                    )
                else:
                    outcome = "ok"
                findings.append({"line_number": line.line_number, "procedure_code": code,
                                 "rule": "age_restriction", "patient_age": age, "outcome": outcome})

            # Gender restriction
            gender_rule = rules.gender_restriction_for(code)
            if gender_rule is not None:
                gender = _normalise_gender(claim.patient.gender)
                if gender is None:
                    outcome = "issue"
                    issues.append(f"{prefix}: gender-restricted procedure requires patient gender")
                elif gender != gender_rule.required_gender:
                    outcome = "issue"
                    issues.append(
                        f"{prefix}: procedure restricted to gender {gender_rule.required_gender}, "
                        f"patient gender is {gender}"
                    )
                else:
                    outcome = "ok"
                findings.append({"line_number": line.line_number, "procedure_code": code,
                                 "rule": "gender_restriction", "outcome": outcome})

        risk_level = "high" if issues else "medium" if warnings else "low"
        return self._result(issues, warnings, findings=findings, risk_level=risk_level)
