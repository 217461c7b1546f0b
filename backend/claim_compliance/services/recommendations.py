"""
Recommendation Generator

Deterministic mapping from risk factors and the overall risk tier to an
ordered list of remediation actions. Factor recommendations come first in
factor rank order, then the tier list; duplicates keep their first position.
"""

from claim_compliance.enums import RiskLevel, ValidationCategory
from claim_compliance.services.scoring_engine import RiskFactor

MAX_RECOMMENDATIONS = 10

CATEGORY_RECOMMENDATIONS: dict[ValidationCategory, dict[RiskLevel, list[str]]] = {
    ValidationCategory.MEDICAL_NECESSITY: {
        RiskLevel.HIGH: [
            "Attach clinical documentation supporting medical necessity for flagged procedures",
            "Obtain prior authorization before submitting authorization-required procedures",
            "Verify diagnosis pointers reference valid ICD-10 codes on every service line",
        ],
        RiskLevel.MEDIUM: [
            "Review high-risk diagnosis/procedure combinations with the ordering provider",
        ],
        RiskLevel.LOW: [
            "Add the specific documentation type required for high-risk combinations",
        ],
    },
    ValidationCategory.TIMELY_FILING: {
        RiskLevel.HIGH: [
            "Claim is past the payer filing limit; check eligibility for a timely filing exception",
            "Submit proof of timely filing if the claim was previously sent",
        ],
        RiskLevel.MEDIUM: [
            "Confirm service dates before determining the filing deadline",
        ],
        RiskLevel.LOW: [
            "Prioritize submission: the filing deadline is approaching",
        ],
    },
    ValidationCategory.PROVIDER_ENROLLMENT: {
        RiskLevel.HIGH: [
            "Resolve provider enrollment status with the payer before billing",
            "Hold claims for dates of service before the provider enrollment effective date",
        ],
        RiskLevel.MEDIUM: [
            "Verify provider enrollment status with the payer",
        ],
        RiskLevel.LOW: [
            "Record the provider enrollment effective date",
        ],
    },
    ValidationCategory.FREQUENCY_LIMITS: {
        RiskLevel.HIGH: [
            "Reduce billed units to the allowed frequency or document medical necessity for the excess",
            "Review patient service history for duplicate billing",
        ],
        RiskLevel.MEDIUM: [
            "Review frequency limits for repeated procedures",
        ],
        RiskLevel.LOW: [
            "Capture patient date of birth so age-based limits can be evaluated",
        ],
    },
    ValidationCategory.PAYER_COMPLIANCE: {
        RiskLevel.HIGH: [
            "Complete all payer-required fields before submission",
            "Remove modifiers the payer does not allow for the billed procedure",
        ],
        RiskLevel.MEDIUM: [
            "Review payer-specific billing requirements",
        ],
        RiskLevel.LOW: [
            "Add payer-expected modifiers to the affected service lines",
        ],
    },
    ValidationCategory.CLAIM_COMPLETENESS: {
        RiskLevel.HIGH: [
            "Complete all missing claim elements",
        ],
        RiskLevel.MEDIUM: [
            "Complete missing claim elements before submission",
            "Validate procedure codes against current CPT/HCPCS code sets",
        ],
        RiskLevel.LOW: [
            "Review claim data entry for completeness",
        ],
    },
}

TIER_RECOMMENDATIONS: dict[RiskLevel, list[str]] = {
    RiskLevel.CRITICAL: [
        "Do not submit: resolve all failed validation categories first",
        "Escalate the claim to compliance review",
        "Document corrective actions taken for audit purposes",
    ],
    RiskLevel.HIGH: [
        "Perform a detailed pre-submission review of this claim",
        "Verify supporting documentation is complete and attached",
        "Confirm payer-specific requirements are met",
    ],
    RiskLevel.MEDIUM: [
        "Review flagged categories before submission",
        "Double-check documentation and coding accuracy",
        "Monitor the claim for payer follow-up requests",
    ],
    RiskLevel.LOW: [
        "Proceed with standard submission",
        "Continue routine compliance monitoring",
    ],
}

# Minimum recommendations per tier
TIER_MINIMUMS = {
    RiskLevel.CRITICAL: 3,
    RiskLevel.HIGH: 3,
    RiskLevel.MEDIUM: 3,
    RiskLevel.LOW: 2,
}


def generate_recommendations(
    risk_factors: list[RiskFactor] | tuple[RiskFactor, ...],
    overall_risk: RiskLevel,
    limit: int = MAX_RECOMMENDATIONS,
) -> list[str]:
    ordered: list[str] = []
    for factor in risk_factors:
        ordered.extend(CATEGORY_RECOMMENDATIONS.get(factor.category, {}).get(factor.risk_level, []))
    ordered.extend(TIER_RECOMMENDATIONS[overall_risk])

    seen: set[str] = set()
    unique = []
    for text in ordered:
        if text not in seen:
            seen.add(text)
            unique.append(text)

    return unique[:max(limit, TIER_MINIMUMS[overall_risk])]
