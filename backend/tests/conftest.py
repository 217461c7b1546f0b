"""Shared test fixtures for engine tests."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from claim_compliance.catalog import default_catalog
from claim_compliance.clock import FixedClock
from claim_compliance.schemas.claim import (
    ClaimSnapshot,
    DiagnosisCode,
    PatientInfo,
    PayerInfo,
    ProviderInfo,
    ServiceLine,
)
from claim_compliance.services.validation_engine import ValidationEngine

FIXED_NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)
SERVICE_DATE = date(2024, 5, 20)


def build_claim(claim_id: str = "CLM-0001", **overrides) -> ClaimSnapshot:
    """A clean Medicare claim: every category passes under the default catalog."""
    claim = ClaimSnapshot(
        claim_id=claim_id,
        patient=PatientInfo(
            patient_id="PAT-1001",
            first_name="Maria",
            last_name="Lopez",
            date_of_birth=date(1970, 3, 10),
            gender="F",
        ),
        provider=ProviderInfo(
            npi="1234567893",
            taxonomy_code="207Q00000X",
            enrollment_status="active",
            enrollment_date=date(2020, 1, 1),
        ),
        payer=PayerInfo(name="Medicare Part B", member_id="1EG4TE5MK73"),
        service_lines=(
            ServiceLine(
                line_number=1,
                procedure_code="99214",
                units=1,
                charge_amount=Decimal("145.00"),
                service_date=SERVICE_DATE,
                place_of_service="11",
                diagnosis_pointer=1,
            ),
        ),
        diagnoses=(DiagnosisCode(code="E11.9", pointer_position=1),),
    )
    return claim.model_copy(update=overrides) if overrides else claim


def build_line(**fields) -> ServiceLine:
    base = {
        "line_number": 1,
        "procedure_code": "99214",
        "units": 1,
        "charge_amount": Decimal("100.00"),
        "service_date": SERVICE_DATE,
        "place_of_service": "11",
        "diagnosis_pointer": 1,
    }
    base.update(fields)
    return ServiceLine(**base)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(FIXED_NOW)


@pytest.fixture(scope="session")
def catalog():
    return default_catalog()


@pytest.fixture
def engine(catalog, clock) -> ValidationEngine:
    return ValidationEngine(catalog, clock)


@pytest.fixture
def make_claim():
    """Factory for clean claims with field overrides."""
    return build_claim


@pytest.fixture
def make_line():
    return build_line
