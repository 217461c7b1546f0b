"""
Rule Catalog models.

The catalog is versioned configuration: every validator reads its rules
from here through table lookups. Models are frozen and validated on load;
an inconsistent catalog is rejected rather than normalised.
"""

import re
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from claim_compliance.enums import (
    AlertSeverity,
    CATEGORY_ORDER,
    ValidationCategory,
    ValidationStatus,
)
from claim_compliance.schemas.claim import CLAIM_FIELDS

TRACKED_METRIC_NAMES = frozenset({
    "overall_score",
    "validation_rate",
    "first_pass_rate",
    "denial_rate",
    "timely_filing_rate",
    "provider_enrollment_rate",
    "medical_necessity_rate",
})


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


def _check_pattern(value: str) -> str:
    try:
        re.compile(value)
    except re.error as exc:
        raise ValueError(f"invalid regex {value!r}: {exc}") from exc
    return value


# ── Medical necessity ──

class HighRiskCombination(_Frozen):
    diagnosis_pattern: str
    procedure_codes: tuple[str, ...]
    requirement: str
    documentation_type: str
    severity: str = "high"

    @field_validator("diagnosis_pattern")
    @classmethod
    def _valid_pattern(cls, value: str) -> str:
        return _check_pattern(value)

    def matches(self, diagnosis_code: str, procedure_code: str) -> bool:
        return (
            procedure_code in self.procedure_codes
            and re.match(self.diagnosis_pattern, diagnosis_code) is not None
        )


class AgeRestriction(_Frozen):
    procedure_code: str
    min_age: int | None = Field(None, ge=0)
    max_age: int | None = Field(None, ge=0)
    requirement: str = ""

    @model_validator(mode="after")
    def _ordered(self):
        if self.min_age is not None and self.max_age is not None and self.min_age > self.max_age:
            raise ValueError(f"age restriction for {self.procedure_code}: min_age > max_age")
        return self

    def allows(self, age: int) -> bool:
        if self.min_age is not None and age < self.min_age:
            return False
        if self.max_age is not None and age > self.max_age:
            return False
        return True

    @property
    def range_label(self) -> str:
        return f"{self.min_age if self.min_age is not None else 0}-{self.max_age if self.max_age is not None else 'unlimited'}"


class GenderRestriction(_Frozen):
    procedure_codes: tuple[str, ...]
    required_gender: str
    requirement: str = ""


class MedicalNecessityRules(_Frozen):
    high_risk_combinations: tuple[HighRiskCombination, ...] = ()
    prior_auth_required: tuple[str, ...] = ()
    age_restrictions: tuple[AgeRestriction, ...] = ()
    gender_restrictions: tuple[GenderRestriction, ...] = ()

    def age_restriction_for(self, procedure_code: str) -> AgeRestriction | None:
        return next((r for r in self.age_restrictions if r.procedure_code == procedure_code), None)

    def gender_restriction_for(self, procedure_code: str) -> GenderRestriction | None:
        return next((r for r in self.gender_restrictions if procedure_code in r.procedure_codes), None)


# ── Payer resolution & timely filing ──

class PayerKeyword(_Frozen):
    payer_type: str
    keywords: tuple[str, ...]


class FilingLimit(_Frozen):
    limit_days: int = Field(gt=0)
    description: str = ""
    exceptions: tuple[str, ...] = ()


class TimelyFilingRules(_Frozen):
    warning_buffer_days: int = Field(30, ge=0)
    limits: dict[str, FilingLimit]


# ── Frequency / quantity ──

class DailyLimit(_Frozen):
    procedure_code: str
    max_per_day: int = Field(ge=0)
    description: str = ""


class AnnualLimit(_Frozen):
    procedure_code: str
    max_per_year: int = Field(ge=0)
    description: str = ""


class LifetimeLimit(_Frozen):
    procedure_code: str
    max_lifetime: int = Field(ge=0)
    description: str = ""


class AgeBracket(_Frozen):
    min_age: int = Field(0, ge=0)
    max_age: int | None = Field(None, ge=0)
    max_per_year: int = Field(ge=0)

    @model_validator(mode="after")
    def _ordered(self):
        if self.max_age is not None and self.min_age > self.max_age:
            raise ValueError("age bracket min_age > max_age")
        return self

    def contains(self, age: int) -> bool:
        return age >= self.min_age and (self.max_age is None or age <= self.max_age)


class AgeBasedLimit(_Frozen):
    procedure_code: str
    age_ranges: tuple[AgeBracket, ...]
    description: str = ""

    def bracket_for(self, age: int) -> AgeBracket | None:
        return next((b for b in self.age_ranges if b.contains(age)), None)


class FrequencyRules(_Frozen):
    daily_limits: tuple[DailyLimit, ...] = ()
    annual_limits: tuple[AnnualLimit, ...] = ()
    lifetime_limits: tuple[LifetimeLimit, ...] = ()
    age_based_limits: tuple[AgeBasedLimit, ...] = ()

    def daily_for(self, code: str) -> DailyLimit | None:
        return next((r for r in self.daily_limits if r.procedure_code == code), None)

    def annual_for(self, code: str) -> AnnualLimit | None:
        return next((r for r in self.annual_limits if r.procedure_code == code), None)

    def lifetime_for(self, code: str) -> LifetimeLimit | None:
        return next((r for r in self.lifetime_limits if r.procedure_code == code), None)

    def age_based_for(self, code: str) -> AgeBasedLimit | None:
        return next((r for r in self.age_based_limits if r.procedure_code == code), None)


# ── Provider enrollment ──

class EnrollmentStatusRule(_Frozen):
    can_bill: bool
    description: str = ""


class ProviderEnrollmentRules(_Frozen):
    statuses: dict[str, EnrollmentStatusRule]


# ── Payer-specific requirements ──

class ModifierRule(_Frozen):
    procedure_code: str
    modifier: str
    reason: str = ""


class PayerRequirement(_Frozen):
    required_fields: tuple[str, ...] = ()
    required_modifiers: tuple[ModifierRule, ...] = ()
    prohibited_modifiers: tuple[ModifierRule, ...] = ()

    @field_validator("required_fields")
    @classmethod
    def _known_fields(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        unknown = [label for label in value if label not in CLAIM_FIELDS]
        if unknown:
            raise ValueError(f"unknown required field label(s): {', '.join(unknown)}")
        return value


class CompletenessRules(_Frozen):
    pass_threshold: float = Field(90, ge=0, le=100)
    procedure_code_pattern: str = r"^(\d{4}[0-9A-Z]|[A-V]\d{4})$"

    @field_validator("procedure_code_pattern")
    @classmethod
    def _valid_pattern(cls, value: str) -> str:
        return _check_pattern(value)


# ── Scoring ──

class RiskThresholds(_Frozen):
    critical: float = 90
    high: float = 70
    medium: float = 40

    @model_validator(mode="after")
    def _ordered(self):
        if not (100 >= self.critical > self.high > self.medium > 0):
            raise ValueError("risk thresholds must satisfy 100 >= critical > high > medium > 0")
        return self


def _check_weights(name: str, weights: dict) -> None:
    missing = [c.value for c in CATEGORY_ORDER if c not in weights]
    if missing:
        raise ValueError(f"{name} missing categories: {', '.join(missing)}")
    if any(w < 0 for w in weights.values()):
        raise ValueError(f"{name} must be non-negative")
    total = sum(Decimal(str(w)) for w in weights.values())
    if total != Decimal("1"):
        raise ValueError(f"{name} must sum to 1.0, got {total}")


def _check_points(name: str, points: dict) -> None:
    missing = [s.value for s in ValidationStatus if s not in points]
    if missing:
        raise ValueError(f"{name} missing statuses: {', '.join(missing)}")
    if any(p < 0 or p > 100 for p in points.values()):
        raise ValueError(f"{name} must be within [0, 100]")


class ScoringRules(_Frozen):
    risk_weights: dict[ValidationCategory, float]
    status_risk_points: dict[ValidationStatus, float]
    risk_thresholds: RiskThresholds = RiskThresholds()
    compliance_weights: dict[ValidationCategory, float]
    status_compliance_penalty: dict[ValidationStatus, float]

    @model_validator(mode="after")
    def _consistent(self):
        _check_weights("risk_weights", self.risk_weights)
        _check_weights("compliance_weights", self.compliance_weights)
        _check_points("status_risk_points", self.status_risk_points)
        _check_points("status_compliance_penalty", self.status_compliance_penalty)
        if self.status_risk_points[ValidationStatus.PASS] != 0:
            raise ValueError("status_risk_points for pass must be 0")
        return self


# ── Monitoring ──

class ComplianceLevels(_Frozen):
    excellent: float = 95
    good: float = 85
    fair: float = 75
    poor: float = 60

    @model_validator(mode="after")
    def _ordered(self):
        if not (self.excellent > self.good > self.fair > self.poor):
            raise ValueError("compliance levels must satisfy excellent > good > fair > poor")
        return self


class SeverityLevel(_Frozen):
    threshold: float = Field(ge=0, le=100)
    color: str


class TrackedMetric(_Frozen):
    metric: str
    title: str
    higher_is_better: bool = True

    @field_validator("metric")
    @classmethod
    def _known(cls, value: str) -> str:
        if value not in TRACKED_METRIC_NAMES:
            raise ValueError(f"unknown tracked metric {value!r}")
        return value


class MonitoringRules(_Frozen):
    compliance_levels: ComplianceLevels = ComplianceLevels()
    alert_severity: dict[AlertSeverity, SeverityLevel]
    tracked_metrics: tuple[TrackedMetric, ...] = ()
    pattern_min_occurrences: int = Field(2, ge=1)
    pattern_change_ratio: float = Field(0.2, ge=0)

    @model_validator(mode="after")
    def _ordered(self):
        missing = [s.value for s in AlertSeverity if s not in self.alert_severity]
        if missing:
            raise ValueError(f"alert_severity missing levels: {', '.join(missing)}")
        cutoffs = [self.alert_severity[s].threshold for s in AlertSeverity]
        if any(a <= b for a, b in zip(cutoffs, cutoffs[1:])):
            raise ValueError("alert severity thresholds must satisfy critical > high > medium > low")
        return self


# ── Catalog root ──

class RuleCatalog(_Frozen):
    version: str = Field(min_length=1)
    medical_necessity: MedicalNecessityRules
    payer_keywords: tuple[PayerKeyword, ...] = ()
    default_payer_type: str = "Commercial"
    timely_filing: TimelyFilingRules
    frequency_limits: FrequencyRules
    provider_enrollment: ProviderEnrollmentRules
    payer_requirements: dict[str, PayerRequirement]
    claim_completeness: CompletenessRules = CompletenessRules()
    scoring: ScoringRules
    monitoring: MonitoringRules

    @model_validator(mode="after")
    def _default_payer_covered(self):
        if self.default_payer_type not in self.timely_filing.limits:
            raise ValueError(f"timely_filing.limits has no entry for default payer type {self.default_payer_type!r}")
        if self.default_payer_type not in self.payer_requirements:
            raise ValueError(f"payer_requirements has no entry for default payer type {self.default_payer_type!r}")
        return self

    def resolve_payer_type(self, payer_name: str | None) -> str:
        """Map a payer name to a payer type by keyword; unknown payers use the default type."""
        if not payer_name:
            return self.default_payer_type
        name = payer_name.lower()
        for entry in self.payer_keywords:
            if any(keyword.lower() in name for keyword in entry.keywords):
                return entry.payer_type
        return self.default_payer_type

    def filing_limit_for(self, payer_type: str) -> FilingLimit:
        return self.timely_filing.limits.get(payer_type) or self.timely_filing.limits[self.default_payer_type]

    def requirements_for(self, payer_type: str) -> PayerRequirement:
        return self.payer_requirements.get(payer_type) or self.payer_requirements[self.default_payer_type]
