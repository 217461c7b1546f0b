"""
Frequency / quantity limits validator.

Four independent limit types per procedure code:
  daily:     units on a single service line
  annual:    history + current claim units in the service date's calendar year
  lifetime:  history + current claim units, all time
  age_based: per-year ceiling chosen by the patient's age bracket

Each breach is its own issue so reporting can show exactly which limit fired.
"""

from collections import defaultdict
from datetime import date, datetime

from claim_compliance.catalog.models import RuleCatalog
from claim_compliance.enums import ValidationCategory
from claim_compliance.schemas.claim import ClaimSnapshot
from claim_compliance.validators.base import BaseValidator, CategoryResult


def _row(code: str, limit_type: str, measured: int, limit: int, period: str) -> dict:
    return {
        "procedure_code": code,
        "limit_type": limit_type,
        "period": period,
        "measured": measured,
        "limit": limit,
        "remaining": max(limit - measured, 0),
        "exceeded": measured > limit,
    }


class FrequencyLimitsValidator(BaseValidator):
    category = ValidationCategory.FREQUENCY_LIMITS

    def validate(self, claim: ClaimSnapshot, catalog: RuleCatalog, now: datetime) -> CategoryResult:
        rules = catalog.frequency_limits
        today = now.date()
        issues: list[str] = []
        warnings: list[str] = []
        analysis: list[dict] = []

        # Current claim units per code, keyed by service year
        current: dict[str, dict[int, int]] = defaultdict(lambda: defaultdict(int))
        first_date: dict[tuple[str, int], date] = {}
        for line in claim.service_lines:
            code = line.procedure_code
            if not code:
                continue
            service_date = line.service_date or today
            current[code][service_date.year] += line.units
            key = (code, service_date.year)
            if key not in first_date or service_date < first_date[key]:
                first_date[key] = service_date

            daily = rules.daily_for(code)
            if daily is not None:
                row = _row(code, "daily", line.units, daily.max_per_day, f"line {line.line_number}")
                analysis.append(row)
                if row["exceeded"]:
                    issues.append(
                        f"Daily limit exceeded for {code} on line {line.line_number}: "
                        f"{line.units} units billed, limit {daily.max_per_day} per day"
                    )

        history: dict[str, dict[int, int]] = defaultdict(lambda: defaultdict(int))
        for prior in claim.patient_history:
            history[prior.procedure_code][prior.service_date.year] += prior.units

        for code in sorted(current):
            annual = rules.annual_for(code)
            age_based = rules.age_based_for(code)
            for year in sorted(current[code]):
                measured = current[code][year] + history[code][year]

                if annual is not None:
                    row = _row(code, "annual", measured, annual.max_per_year, str(year))
                    analysis.append(row)
                    if row["exceeded"]:
                        issues.append(
                            f"Annual limit exceeded for {code} in {year}: "
                            f"{measured} units, limit {annual.max_per_year} per year"
                        )

                if age_based is not None:
                    age = claim.age_on(first_date[(code, year)])
                    if age is None:
                        warnings.append(f"Age-based limit for {code} not evaluated: patient date of birth missing")
                        continue
                    bracket = age_based.bracket_for(age)
                    if bracket is None:
                        continue
                    row = _row(code, "age_based", measured, bracket.max_per_year, str(year))
                    row["patient_age"] = age
                    analysis.append(row)
                    if row["exceeded"]:
                        issues.append(
                            f"Age-based limit exceeded for {code} in {year}: {measured} units "
                            f"at age {age}, limit {bracket.max_per_year} per year"
                        )

            lifetime = rules.lifetime_for(code)
            if lifetime is not None:
                measured = sum(current[code].values()) + sum(history[code].values())
                row = _row(code, "lifetime", measured, lifetime.max_lifetime, "lifetime")
                analysis.append(row)
                if row["exceeded"]:
                    issues.append(
                        f"Lifetime limit exceeded for {code}: {measured} units, "
                        f"limit {lifetime.max_lifetime}"
                    )

        return self._result(issues, warnings, frequency_analysis=analysis)
