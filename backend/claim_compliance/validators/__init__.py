from claim_compliance.validators.base import BaseValidator, CategoryResult
from claim_compliance.validators.claim_completeness import ClaimCompletenessValidator
from claim_compliance.validators.frequency_limits import FrequencyLimitsValidator
from claim_compliance.validators.medical_necessity import MedicalNecessityValidator
from claim_compliance.validators.payer_compliance import PayerComplianceValidator
from claim_compliance.validators.provider_enrollment import ProviderEnrollmentValidator
from claim_compliance.validators.timely_filing import TimelyFilingValidator


def all_validators() -> list[BaseValidator]:
    """One instance of each category validator, in category order."""
    return [
        MedicalNecessityValidator(),
        TimelyFilingValidator(),
        ProviderEnrollmentValidator(),
        FrequencyLimitsValidator(),
        PayerComplianceValidator(),
        ClaimCompletenessValidator(),
    ]


__all__ = [
    "BaseValidator", "CategoryResult", "all_validators",
    "ClaimCompletenessValidator", "FrequencyLimitsValidator", "MedicalNecessityValidator",
    "PayerComplianceValidator", "ProviderEnrollmentValidator", "TimelyFilingValidator",
]
