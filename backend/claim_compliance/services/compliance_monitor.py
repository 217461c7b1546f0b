"""
Compliance Monitoring Layer

Time-windowed aggregation over many validation reports:
  - KPIs (validation, first-pass, denial and per-category rates, overall score)
  - alerts when a tracked metric's shortfall crosses a severity threshold,
    plus filing-deadline and rising-pattern alerts
  - day-bucketed trend points and an append-only trend log
  - window risk assessment, recurring patterns, executive summary

Counts use the latest report per claim inside the window. `overall_score`
is always recomputed as the mean compliance score of those reports.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal

from claim_compliance.catalog.models import RuleCatalog, TrackedMetric
from claim_compliance.clock import Clock, SystemClock
from claim_compliance.enums import (
    AlertSeverity,
    CATEGORY_ORDER,
    RiskLevel,
    ValidationCategory,
    ValidationStatus,
)
from claim_compliance.services.alerts import Alert, AlertBook, new_alert_id
from claim_compliance.services.pattern_detection import Pattern, detect_patterns
from claim_compliance.services.recommendations import generate_recommendations
from claim_compliance.services.scoring_engine import RiskAssessment, RiskFactor, ScoringEngine
from claim_compliance.services.status_resolver import COMPLIANT, NON_COMPLIANT, PENDING, compliance_bucket
from claim_compliance.services.validation_engine import ValidationReport
from claim_compliance.telemetry import metrics as prom

logger = logging.getLogger(__name__)

TIME_RANGES = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}
DEFAULT_TIME_RANGE = "30d"

_OK_STATUSES = (ValidationStatus.PASS, ValidationStatus.WARNING)

_CATEGORY_RATES = {
    "timely_filing_rate": ValidationCategory.TIMELY_FILING,
    "provider_enrollment_rate": ValidationCategory.PROVIDER_ENROLLMENT,
    "medical_necessity_rate": ValidationCategory.MEDICAL_NECESSITY,
}

_ALERT_TYPES = {
    AlertSeverity.CRITICAL: "error",
    AlertSeverity.HIGH: "error",
    AlertSeverity.MEDIUM: "warning",
    AlertSeverity.LOW: "info",
}


def parse_time_range(value: str | None) -> tuple[str, int]:
    """Normalise a time-range string to (label, days); unknown values fall back to 30d."""
    if value in TIME_RANGES:
        return value, TIME_RANGES[value]
    if value is not None:
        logger.warning("Unrecognised time range %r, defaulting to %s", value, DEFAULT_TIME_RANGE)
    return DEFAULT_TIME_RANGE, TIME_RANGES[DEFAULT_TIME_RANGE]


def _pct(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


def _by_claim(reports: list[ValidationReport]) -> dict[str, list[ValidationReport]]:
    grouped: dict[str, list[ValidationReport]] = defaultdict(list)
    for report in reports:
        grouped[report.claim_id].append(report)
    for items in grouped.values():
        items.sort(key=lambda r: (r.validated_at, r.fingerprint))
    return grouped


# ── Result types ──

@dataclass(frozen=True)
class ComplianceMetrics:
    time_range: str
    window_start: datetime
    window_end: datetime
    overall_score: float
    validation_rate: float
    first_pass_rate: float
    denial_rate: float
    timely_filing_rate: float
    provider_enrollment_rate: float
    medical_necessity_rate: float
    total_claims: int
    compliant_claims: int
    non_compliant_claims: int
    pending_review: int
    exceptions_by_metric: dict = field(default_factory=dict)

    def value(self, metric: str) -> float:
        return getattr(self, metric)

    def to_dict(self) -> dict:
        return {
            "time_range": self.time_range,
            "window_start": self.window_start.isoformat(),
            "window_end": self.window_end.isoformat(),
            "overall_score": self.overall_score,
            "validation_rate": self.validation_rate,
            "first_pass_rate": self.first_pass_rate,
            "denial_rate": self.denial_rate,
            "timely_filing_rate": self.timely_filing_rate,
            "provider_enrollment_rate": self.provider_enrollment_rate,
            "medical_necessity_rate": self.medical_necessity_rate,
            "total_claims": self.total_claims,
            "compliant_claims": self.compliant_claims,
            "non_compliant_claims": self.non_compliant_claims,
            "pending_review": self.pending_review,
            "exceptions_by_metric": dict(self.exceptions_by_metric),
        }


@dataclass(frozen=True)
class TrendPoint:
    date: date
    compliance_score: float
    validation_rate: float
    denial_rate: float
    claims_processed: int

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "compliance_score": self.compliance_score,
            "validation_rate": self.validation_rate,
            "denial_rate": self.denial_rate,
            "claims_processed": self.claims_processed,
        }


class TrendLog:
    """Append-only history of closed day buckets."""

    def __init__(self):
        self._points: list[TrendPoint] = []

    def __len__(self) -> int:
        return len(self._points)

    @property
    def points(self) -> tuple[TrendPoint, ...]:
        return tuple(self._points)

    def record(self, points: list[TrendPoint], today: date) -> list[TrendPoint]:
        """Append points for days before `today` not yet recorded. Returns the appended points."""
        last = self._points[-1].date if self._points else None
        appended = []
        for point in sorted(points, key=lambda p: p.date):
            if point.date >= today or (last is not None and point.date <= last):
                continue
            self._points.append(point)
            appended.append(point)
            last = point.date
        return appended


@dataclass(frozen=True)
class ExecutiveSummary:
    time_range: str
    generated_at: datetime
    compliance_level: str
    overall_score: float
    risk_level: RiskLevel
    risk_score: float
    key_metrics: dict
    critical_issues: int
    open_alerts: int
    top_patterns: tuple[Pattern, ...]
    recommendations: tuple[str, ...]

    def to_dict(self) -> dict:
        return {
            "time_range": self.time_range,
            "generated_at": self.generated_at.isoformat(),
            "compliance_level": self.compliance_level,
            "overall_score": self.overall_score,
            "risk_level": self.risk_level.value,
            "risk_score": self.risk_score,
            "key_metrics": dict(self.key_metrics),
            "critical_issues": self.critical_issues,
            "open_alerts": self.open_alerts,
            "top_patterns": [p.to_dict() for p in self.top_patterns],
            "recommendations": list(self.recommendations),
        }


@dataclass(frozen=True)
class ComplianceDashboard:
    metrics: ComplianceMetrics
    new_alerts: tuple[Alert, ...]
    open_alerts: tuple[Alert, ...]
    trends: tuple[TrendPoint, ...]
    risk_assessment: RiskAssessment
    summary: ExecutiveSummary

    def to_dict(self) -> dict:
        return {
            "metrics": self.metrics.to_dict(),
            "new_alerts": [a.to_dict() for a in self.new_alerts],
            "alerts": [a.to_dict() for a in self.open_alerts],
            "trends": [t.to_dict() for t in self.trends],
            "risk_assessment": self.risk_assessment.to_dict(),
            "summary": self.summary.to_dict(),
        }


# ── Monitor ──

class ComplianceMonitor:
    """Aggregates validation reports over a time window."""

    def __init__(
        self,
        catalog: RuleCatalog,
        clock: Clock | None = None,
        alert_book: AlertBook | None = None,
        trend_log: TrendLog | None = None,
    ):
        self.catalog = catalog
        self.clock = clock or SystemClock()
        self.alert_book = alert_book if alert_book is not None else AlertBook()
        self.trend_log = trend_log if trend_log is not None else TrendLog()
        self.scoring = ScoringEngine(catalog)
        self.settings = catalog.monitoring

    def window(self, time_range: str | None) -> tuple[str, datetime, datetime]:
        label, days = parse_time_range(time_range)
        end = self.clock.now()
        return label, end - timedelta(days=days), end

    def _in_window(self, reports, start: datetime, end: datetime) -> list[ValidationReport]:
        return sorted(
            (r for r in reports if start <= r.validated_at <= end),
            key=lambda r: (r.claim_id, r.validated_at, r.fingerprint),
        )

    def compliance_level(self, score: float) -> str:
        levels = self.settings.compliance_levels
        if score >= levels.excellent:
            return "excellent"
        elif score >= levels.good:
            return "good"
        elif score >= levels.fair:
            return "fair"
        elif score >= levels.poor:
            return "poor"
        else:
            return "critical"

    # ── Metrics ──

    def compute_metrics(self, reports: list[ValidationReport], time_range: str | None = None) -> ComplianceMetrics:
        label, start, end = self.window(time_range)
        grouped = _by_claim(self._in_window(reports, start, end))
        latest = [items[-1] for items in grouped.values()]
        total = len(latest)

        buckets = defaultdict(int)
        for report in latest:
            buckets[compliance_bucket(report.overall_status)] += 1
        first_pass = sum(
            1 for items in grouped.values() if compliance_bucket(items[0].overall_status) == COMPLIANT
        )

        category_ok = {
            metric: sum(1 for r in latest if r.category(category).status in _OK_STATUSES)
            for metric, category in _CATEGORY_RATES.items()
        }

        if total:
            mean = sum((r.compliance_score for r in latest), Decimal("0")) / total
            overall_score = float(mean.quantize(Decimal("0.01")))
        else:
            overall_score = 0.0

        good = self.settings.compliance_levels.good
        exceptions = {
            "overall_score": sum(1 for r in latest if float(r.compliance_score) < good),
            "validation_rate": total - buckets[COMPLIANT],
            "first_pass_rate": total - first_pass,
            "denial_rate": buckets[NON_COMPLIANT],
            **{metric: total - ok for metric, ok in category_ok.items()},
        }

        return ComplianceMetrics(
            time_range=label,
            window_start=start,
            window_end=end,
            overall_score=overall_score,
            validation_rate=_pct(buckets[COMPLIANT], total),
            first_pass_rate=_pct(first_pass, total),
            denial_rate=_pct(buckets[NON_COMPLIANT], total),
            timely_filing_rate=_pct(category_ok["timely_filing_rate"], total),
            provider_enrollment_rate=_pct(category_ok["provider_enrollment_rate"], total),
            medical_necessity_rate=_pct(category_ok["medical_necessity_rate"], total),
            total_claims=total,
            compliant_claims=buckets[COMPLIANT],
            non_compliant_claims=buckets[NON_COMPLIANT],
            pending_review=buckets[PENDING],
            exceptions_by_metric=exceptions,
        )

    # ── Alerts ──

    def severity_for_gap(self, gap: float) -> AlertSeverity | None:
        """Most severe level whose cutoff the gap reaches, or None."""
        for severity in AlertSeverity:
            if gap >= self.settings.alert_severity[severity].threshold:
                return severity
        return None

    def _make_alert(self, key: str, severity: AlertSeverity, **fields) -> Alert:
        return Alert(
            id=new_alert_id(),
            key=key,
            type=_ALERT_TYPES[severity],
            severity=severity,
            color=self.settings.alert_severity[severity].color,
            created_at=self.clock.now(),
            **fields,
        )

    def _metric_alert(self, tracked: TrackedMetric, metrics: ComplianceMetrics) -> Alert | None:
        value = metrics.value(tracked.metric)
        gap = 100 - value if tracked.higher_is_better else value
        severity = self.severity_for_gap(gap)
        if severity is None:
            return None
        direction = "below target" if tracked.higher_is_better else "above target"
        return self._make_alert(
            f"metric:{tracked.metric}:{severity.value}",
            severity,
            title=f"{tracked.title} {direction}",
            description=f"{tracked.title} is {value:.2f}% over the last {metrics.time_range}",
            affected_claims=metrics.exceptions_by_metric.get(tracked.metric, 0),
            action_required=f"Review claims contributing to {tracked.title.lower()}",
            metric=tracked.metric,
            value=value,
        )

    def _filing_alerts(self, latest: list[ValidationReport]) -> list[Alert]:
        missed, approaching = [], []
        for report in latest:
            result = report.category(ValidationCategory.TIMELY_FILING)
            if result.details.get("days_elapsed") is None:
                continue
            if result.status == ValidationStatus.FAILED:
                missed.append(result)
            elif result.status == ValidationStatus.WARNING:
                approaching.append(result)

        alerts = []
        if missed:
            alerts.append(self._make_alert(
                "filing:missed", AlertSeverity.CRITICAL,
                title="Timely filing deadlines missed",
                description=f"{len(missed)} claim(s) are past the payer filing limit",
                affected_claims=len(missed),
                action_required="Review missed claims for timely filing exceptions",
            ))
        if approaching:
            deadline = min(r.details["filing_deadline"] for r in approaching)
            alerts.append(self._make_alert(
                "filing:approaching", AlertSeverity.HIGH,
                title="Timely filing deadlines approaching",
                description=f"{len(approaching)} claim(s) are within the filing warning window",
                affected_claims=len(approaching),
                action_required="Prioritize submission of claims nearing their filing deadline",
                deadline=deadline,
            ))
        return alerts

    def _pattern_alerts(self, patterns: list[Pattern]) -> list[Alert]:
        return [
            self._make_alert(
                f"pattern:{p.pattern.value}", AlertSeverity.MEDIUM,
                title=f"Rising {p.pattern.label.lower()} issues",
                description=p.description,
                affected_claims=p.affected_claims,
                action_required=f"Investigate the root cause of recurring {p.pattern.label.lower()} issues",
            )
            for p in patterns if p.trend == "rising"
        ]

    def evaluate_alerts(self, reports: list[ValidationReport], time_range: str | None = None) -> list[Alert]:
        """Raise alerts for the window. Returns only alerts newly added to the alert book."""
        metrics = self.compute_metrics(reports, time_range)
        if metrics.total_claims == 0:
            return []

        candidates = []
        for tracked in self.settings.tracked_metrics:
            alert = self._metric_alert(tracked, metrics)
            if alert is not None:
                candidates.append(alert)

        _, start, end = self.window(time_range)
        in_window = self._in_window(reports, start, end)
        latest = [items[-1] for items in _by_claim(in_window).values()]
        candidates.extend(self._filing_alerts(latest))
        candidates.extend(self._pattern_alerts(self._patterns(in_window, start, end)))

        created = []
        for alert in candidates:
            if self.alert_book.add(alert):
                prom.compliance_alerts_total.labels(severity=alert.severity.value).inc()
                logger.info("Raised %s alert %s: %s", alert.severity.value, alert.id, alert.title)
                created.append(alert)
        return created

    # ── Trends ──

    def build_trends(self, reports: list[ValidationReport], time_range: str | None = None) -> list[TrendPoint]:
        _, start, end = self.window(time_range)
        by_day: dict[date, list[ValidationReport]] = defaultdict(list)
        for report in self._in_window(reports, start, end):
            by_day[report.validated_at.date()].append(report)

        points = []
        for day in sorted(by_day):
            latest = [items[-1] for items in _by_claim(by_day[day]).values()]
            total = len(latest)
            mean = sum((r.compliance_score for r in latest), Decimal("0")) / total
            statuses = [compliance_bucket(r.overall_status) for r in latest]
            points.append(TrendPoint(
                date=day,
                compliance_score=float(mean.quantize(Decimal("0.01"))),
                validation_rate=_pct(statuses.count(COMPLIANT), total),
                denial_rate=_pct(statuses.count(NON_COMPLIANT), total),
                claims_processed=total,
            ))
        return points

    def record_trends(self, reports: list[ValidationReport], time_range: str | None = None) -> list[TrendPoint]:
        """Append closed day buckets to the trend log."""
        return self.trend_log.record(self.build_trends(reports, time_range), self.clock.today())

    # ── Risk & patterns ──

    def _patterns(self, in_window: list[ValidationReport], start: datetime, end: datetime) -> list[Pattern]:
        observations = [obs for r in in_window for obs in r.factor_observations()]
        return detect_patterns(
            observations, start, end,
            min_occurrences=self.settings.pattern_min_occurrences,
            change_ratio=self.settings.pattern_change_ratio,
        )

    def assess_risk(self, reports: list[ValidationReport], time_range: str | None = None) -> RiskAssessment:
        """Window risk: mean risk score over the latest report per claim, factors aggregated by category."""
        _, start, end = self.window(time_range)
        in_window = self._in_window(reports, start, end)
        latest = [items[-1] for items in _by_claim(in_window).values()]
        total = len(latest)

        if total:
            mean = sum((r.risk_assessment.risk_score for r in latest), Decimal("0")) / total
            risk_score = mean.quantize(Decimal("0.01"))
        else:
            risk_score = Decimal("0.00")
        overall_risk = self.scoring.classify_risk(risk_score)

        flagged: dict[ValidationCategory, list[RiskFactor]] = defaultdict(list)
        for report in latest:
            for factor in report.risk_assessment.risk_factors:
                flagged[factor.category].append(factor)

        factors = []
        for category in CATEGORY_ORDER:
            items = flagged.get(category)
            if not items:
                continue
            contribution = (sum((f.contribution for f in items), Decimal("0")) / total).quantize(Decimal("0.01"))
            factors.append(RiskFactor(
                category=category,
                description=f"{len(items)} of {total} claims flagged for {category.label.lower()}",
                risk_level=max((f.risk_level for f in items), key=lambda level: level.rank),
                impact=f"{_pct(len(items), total):.2f}% of claims affected",
                contribution=contribution,
            ))
        factors.sort(key=lambda f: (-f.contribution, f.category.order))

        return RiskAssessment(
            overall_risk=overall_risk,
            risk_score=risk_score,
            risk_factors=tuple(factors),
            patterns_detected=tuple(self._patterns(in_window, start, end)),
            recommendations=tuple(generate_recommendations(factors, overall_risk)),
        )

    # ── Reporting ──

    def executive_summary(
        self,
        metrics: ComplianceMetrics,
        risk: RiskAssessment,
    ) -> ExecutiveSummary:
        open_alerts = self.alert_book.open_alerts()
        return ExecutiveSummary(
            time_range=metrics.time_range,
            generated_at=self.clock.now(),
            compliance_level=self.compliance_level(metrics.overall_score),
            overall_score=metrics.overall_score,
            risk_level=risk.overall_risk,
            risk_score=float(risk.risk_score),
            key_metrics={
                "total_claims": metrics.total_claims,
                "validation_rate": metrics.validation_rate,
                "first_pass_rate": metrics.first_pass_rate,
                "denial_rate": metrics.denial_rate,
                "timely_filing_rate": metrics.timely_filing_rate,
                "provider_enrollment_rate": metrics.provider_enrollment_rate,
                "medical_necessity_rate": metrics.medical_necessity_rate,
            },
            critical_issues=sum(1 for a in open_alerts if a.severity == AlertSeverity.CRITICAL),
            open_alerts=len(open_alerts),
            top_patterns=tuple(risk.patterns_detected[:3]),
            recommendations=risk.recommendations,
        )

    def dashboard(self, reports: list[ValidationReport], time_range: str | None = None) -> ComplianceDashboard:
        metrics = self.compute_metrics(reports, time_range)
        new_alerts = self.evaluate_alerts(reports, time_range)
        trends = self.build_trends(reports, time_range)
        risk = self.assess_risk(reports, time_range)
        return ComplianceDashboard(
            metrics=metrics,
            new_alerts=tuple(new_alerts),
            open_alerts=tuple(self.alert_book.open_alerts()),
            trends=tuple(trends),
            risk_assessment=risk,
            summary=self.executive_summary(metrics, risk),
        )
