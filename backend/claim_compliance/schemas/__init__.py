from claim_compliance.schemas.claim import (
    CLAIM_FIELDS,
    ClaimSnapshot,
    DiagnosisCode,
    HistoricalService,
    PatientInfo,
    PayerInfo,
    ProviderInfo,
    ServiceLine,
)

__all__ = [
    "CLAIM_FIELDS", "ClaimSnapshot", "DiagnosisCode", "HistoricalService",
    "PatientInfo", "PayerInfo", "ProviderInfo", "ServiceLine",
]
