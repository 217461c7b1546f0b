"""
Compliance Service

Async boundary between the pure engine and its collaborators:
claim data provider, audit sink and notification dispatcher. Validation
itself is CPU-bound and runs in worker threads; batch results are sorted
by claim id so completion order never matters.
"""

import asyncio
import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from typing import Protocol

from claim_compliance.catalog.models import RuleCatalog
from claim_compliance.clock import Clock, SystemClock
from claim_compliance.config import settings
from claim_compliance.schemas.claim import ClaimSnapshot
from claim_compliance.services.alerts import Alert, AlertBook
from claim_compliance.services.audit_service import AuditService, AuditSink
from claim_compliance.services.compliance_monitor import ComplianceDashboard, ComplianceMonitor, TrendLog
from claim_compliance.services.validation_engine import ValidationEngine, ValidationReport
from claim_compliance.telemetry import metrics
from claim_compliance.telemetry.run_context import run_scope

logger = logging.getLogger(__name__)


class ClaimDataProvider(Protocol):
    async def get_claim_snapshot(self, claim_id: str) -> ClaimSnapshot:
        ...


class NotificationDispatcher(Protocol):
    async def dispatch(self, alert: Alert) -> None:
        ...


@dataclass
class BatchValidationResult:
    batch_id: str
    reports: list[ValidationReport] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    by_status: dict[str, int] = field(default_factory=dict)

    @property
    def completed(self) -> int:
        return len(self.reports)

    @property
    def failed(self) -> int:
        return len(self.errors)

    def to_dict(self) -> dict:
        return {
            "batch_id": self.batch_id,
            "completed": self.completed,
            "failed": self.failed,
            "by_status": dict(self.by_status),
            "errors": dict(self.errors),
        }


class ComplianceService:
    """Validates claims, keeps the report history and drives monitoring."""

    def __init__(
        self,
        catalog: RuleCatalog,
        provider: ClaimDataProvider,
        audit_sink: AuditSink,
        dispatcher: NotificationDispatcher,
        clock: Clock | None = None,
    ):
        self.clock = clock or SystemClock()
        self.provider = provider
        self.dispatcher = dispatcher
        self.engine = ValidationEngine(catalog, self.clock)
        self.alert_book = AlertBook()
        self.monitor = ComplianceMonitor(catalog, self.clock, self.alert_book, TrendLog())
        self.audit = AuditService(audit_sink, self.clock)
        self.reports: list[ValidationReport] = []

    def _recent_reports(self, claim_id: str) -> list[ValidationReport]:
        return [r for r in self.reports if r.claim_id == claim_id]

    async def _record(self, report: ValidationReport) -> None:
        self.reports.append(report)
        await self.audit.log_risk_assessed(
            report.claim_id,
            report.overall_status.value,
            float(report.risk_assessment.risk_score),
            report.risk_assessment.overall_risk.value,
            report.fingerprint,
        )

    async def validate_claim(self, claim_id: str) -> ValidationReport:
        """Fetch one claim from the provider, validate it and audit the assessment."""
        snapshot = await self.provider.get_claim_snapshot(claim_id)
        report = await asyncio.to_thread(self.engine.validate, snapshot, self._recent_reports(claim_id))
        await self._record(report)
        return report

    async def validate_snapshots(
        self,
        snapshots: list[ClaimSnapshot],
        max_concurrency: int | None = None,
        batch_id: str | None = None,
    ) -> BatchValidationResult:
        """Validate many snapshots in parallel; one failing claim never aborts the batch."""
        limit = max_concurrency or settings.batch_max_concurrency
        if limit < 1:
            raise ValueError("max_concurrency must be at least 1")
        semaphore = asyncio.Semaphore(limit)

        with run_scope(batch_id) as run_id:
            start = time.perf_counter()
            metrics.batch_size_claims.observe(len(snapshots))

            history = {s.claim_id: self._recent_reports(s.claim_id) for s in snapshots}

            async def _one(snapshot: ClaimSnapshot):
                async with semaphore:
                    try:
                        recent = history[snapshot.claim_id]
                        report = await asyncio.to_thread(self.engine.validate, snapshot, recent)
                        return snapshot, report, None
                    except Exception as e:
                        logger.exception("Batch %s: claim %s could not be validated", run_id, snapshot.claim_id)
                        metrics.batch_claim_failures_total.inc()
                        return snapshot, None, f"{type(e).__name__}: {str(e)[:200]}"

            outcomes = await asyncio.gather(*(_one(s) for s in snapshots))

            result = BatchValidationResult(batch_id=run_id)
            for snapshot, report, error in sorted(outcomes, key=lambda o: o[0].claim_id):
                if error is not None:
                    result.errors[snapshot.claim_id] = error
                else:
                    result.reports.append(report)
            for report in result.reports:
                await self._record(report)
            result.by_status = dict(sorted(Counter(r.overall_status.value for r in result.reports).items()))

            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            logger.info(
                "Batch %s validated %d claims (%d failed)", run_id, result.completed, result.failed,
                extra={"duration_ms": duration_ms},
            )
            return result

    async def refresh_monitoring(
        self,
        reports: list[ValidationReport] | None = None,
        time_range: str | None = None,
    ) -> ComplianceDashboard:
        """Build the dashboard bundle; newly raised alerts are audited and dispatched."""
        dashboard = self.monitor.dashboard(self.reports if reports is None else reports,
                                           time_range or settings.default_time_range)
        for alert in dashboard.new_alerts:
            await self.audit.log_alert_created(alert.id, alert.severity.value, alert.title)
            await self.dispatcher.dispatch(alert)
        return dashboard

    async def acknowledge_alert(self, alert_id: str, user: str, note: str | None = None) -> Alert:
        """Acknowledge an alert; repeating the call is a no-op and emits no audit event."""
        alert, changed = self.alert_book.acknowledge(alert_id, user, self.clock.now(), note)
        if changed:
            await self.audit.log_alert_acknowledged(alert_id, user, note)
        return alert
