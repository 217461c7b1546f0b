"""
Claim Snapshot: the immutable input of a validation run.

A snapshot is parsed once per validation request. Type errors (bad dates,
non-numeric units) raise pydantic's ValidationError; absent values are
allowed and surface later as validation issues.
"""

from datetime import date
from decimal import Decimal
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


# ── Parties ──

class PatientInfo(_Frozen):
    patient_id: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    date_of_birth: date | None = None
    gender: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None


class ProviderInfo(_Frozen):
    npi: str | None = None
    taxonomy_code: str | None = None
    enrollment_status: str | None = None
    enrollment_date: date | None = None
    medicaid_provider_id: str | None = None


class PayerInfo(_Frozen):
    name: str | None = None
    member_id: str | None = None
    group_number: str | None = None


# ── Claim body ──

class ServiceLine(_Frozen):
    line_number: int = 1
    procedure_code: str | None = None
    modifiers: tuple[str, ...] = ()
    units: int = Field(1, ge=0)
    charge_amount: Decimal | None = None
    service_date: date | None = None
    place_of_service: str | None = None
    diagnosis_pointer: int | None = None
    authorization_number: str | None = None


class DiagnosisCode(_Frozen):
    code: str
    pointer_position: int
    description: str | None = None


class HistoricalService(_Frozen):
    """A previously billed service for the same patient."""
    procedure_code: str
    service_date: date
    units: int = 1


class ClaimSnapshot(_Frozen):
    claim_id: str
    patient: PatientInfo = PatientInfo()
    provider: ProviderInfo = ProviderInfo()
    payer: PayerInfo = PayerInfo()
    referring_provider_npi: str | None = None
    facility_npi: str | None = None
    authorization_number: str | None = None
    documentation: tuple[str, ...] = ()
    service_lines: tuple[ServiceLine, ...] = ()
    diagnoses: tuple[DiagnosisCode, ...] = ()
    patient_history: tuple[HistoricalService, ...] = ()

    @property
    def earliest_service_date(self) -> date | None:
        dates = [line.service_date for line in self.service_lines if line.service_date]
        return min(dates) if dates else None

    def diagnosis_for_pointer(self, pointer: int | None) -> DiagnosisCode | None:
        """Resolve a service-line diagnosis pointer; no pointer means the primary diagnosis."""
        position = pointer if pointer is not None else 1
        for diagnosis in self.diagnoses:
            if diagnosis.pointer_position == position:
                return diagnosis
        return None

    def age_on(self, on: date | None) -> int | None:
        """Patient age in whole years on the given date."""
        dob = self.patient.date_of_birth
        if dob is None or on is None:
            return None
        age = on.year - dob.year
        if (on.month, on.day) < (dob.month, dob.day):
            age -= 1
        return age

    def has_authorization(self, line: ServiceLine) -> bool:
        return bool(_present(line.authorization_number) or _present(self.authorization_number))

    def canonical_json(self) -> str:
        return self.model_dump_json()


def _present(value) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return value.strip() != ""
    if isinstance(value, (tuple, list)):
        return len(value) > 0
    return True


# Payer-required fields by display label. Labels appear verbatim in
# payer compliance `missing_fields`, and the catalog may only reference
# labels listed here.
CLAIM_FIELDS: dict[str, Callable[[ClaimSnapshot], bool]] = {
    "NPI": lambda c: _present(c.provider.npi),
    "Taxonomy Code": lambda c: _present(c.provider.taxonomy_code),
    "Medicaid Provider ID": lambda c: _present(c.provider.medicaid_provider_id),
    "Place of Service": lambda c: bool(c.service_lines)
    and all(_present(line.place_of_service) for line in c.service_lines),
    "Referring Provider": lambda c: _present(c.referring_provider_npi),
    "Authorization Number": lambda c: _present(c.authorization_number)
    or (bool(c.service_lines) and all(_present(line.authorization_number) for line in c.service_lines)),
    "Patient Member ID": lambda c: _present(c.payer.member_id),
    "Group Number": lambda c: _present(c.payer.group_number),
    "Diagnosis Codes": lambda c: _present(c.diagnoses),
    "Facility NPI": lambda c: _present(c.facility_npi),
}


def field_present(claim: ClaimSnapshot, label: str) -> bool:
    return CLAIM_FIELDS[label](claim)


def is_present(value) -> bool:
    return _present(value)
