"""
Pattern Detection

Groups risk-factor observations by category over a time window to surface
recurring problem areas, with a trend direction from comparing the first
and second half of the window.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime

from claim_compliance.enums import RiskLevel, ValidationCategory


@dataclass(frozen=True)
class FactorObservation:
    """One risk factor seen on one validation report."""
    claim_id: str
    category: ValidationCategory
    risk_level: RiskLevel
    observed_at: datetime


@dataclass(frozen=True)
class Pattern:
    pattern: ValidationCategory
    description: str
    frequency: int
    affected_claims: int
    impact: RiskLevel
    trend: str              # "rising" | "falling" | "stable"
    first_seen: datetime
    last_seen: datetime

    def to_dict(self) -> dict:
        return {
            "pattern": self.pattern.value,
            "description": self.description,
            "frequency": self.frequency,
            "affected_claims": self.affected_claims,
            "impact": self.impact.value,
            "trend": self.trend,
            "first_seen": self.first_seen.isoformat(),
            "last_seen": self.last_seen.isoformat(),
        }


def classify_trend(earlier: int, later: int, change_ratio: float) -> str:
    if earlier == 0:
        return "rising" if later > 0 else "stable"
    if later > earlier * (1 + change_ratio):
        return "rising"
    if later < earlier * (1 - change_ratio):
        return "falling"
    return "stable"


def detect_patterns(
    observations: list[FactorObservation],
    window_start: datetime,
    window_end: datetime,
    min_occurrences: int = 2,
    change_ratio: float = 0.2,
) -> list[Pattern]:
    """Recurring risk-factor categories in [window_start, window_end]."""
    midpoint = window_start + (window_end - window_start) / 2
    grouped: dict[ValidationCategory, list[FactorObservation]] = defaultdict(list)
    for obs in observations:
        if window_start <= obs.observed_at <= window_end:
            grouped[obs.category].append(obs)

    patterns = []
    for category, items in grouped.items():
        if len(items) < min_occurrences:
            continue
        earlier = sum(1 for o in items if o.observed_at < midpoint)
        later = len(items) - earlier
        claims = {o.claim_id for o in items}
        impact = max((o.risk_level for o in items), key=lambda level: level.rank)
        patterns.append(Pattern(
            pattern=category,
            description=f"{category.label} issues recurring on {len(claims)} claim(s)",
            frequency=len(items),
            affected_claims=len(claims),
            impact=impact,
            trend=classify_trend(earlier, later, change_ratio),
            first_seen=min(o.observed_at for o in items),
            last_seen=max(o.observed_at for o in items),
        ))

    patterns.sort(key=lambda p: (-p.frequency, p.pattern.order))
    return patterns
