"""Tests for the async compliance service: provider, audit sink and dispatcher wiring."""

import asyncio
from datetime import date

import pytest

from claim_compliance.schemas.claim import ProviderInfo
from claim_compliance.services.audit_service import AuditService
from claim_compliance.services.compliance_service import ComplianceService

TERMINATED = ProviderInfo(npi="1234567893", taxonomy_code="207Q00000X",
                          enrollment_status="terminated", enrollment_date=date(2020, 1, 1))


class FakeProvider:
    def __init__(self, claims):
        self.claims = {c.claim_id: c for c in claims}

    async def get_claim_snapshot(self, claim_id):
        try:
            return self.claims[claim_id]
        except KeyError:
            raise LookupError(f"Claim {claim_id} not found") from None


class ListSink:
    def __init__(self):
        self.events = []

    async def emit(self, event):
        self.events.append(event)


class YieldingSink(ListSink):
    async def emit(self, event):
        await asyncio.sleep(0)
        await super().emit(event)


class ListDispatcher:
    def __init__(self):
        self.alerts = []

    async def dispatch(self, alert):
        self.alerts.append(alert)


@pytest.fixture
def sink():
    return ListSink()


@pytest.fixture
def dispatcher():
    return ListDispatcher()


@pytest.fixture
def service_factory(catalog, clock, sink, dispatcher):
    def _build(*claims):
        return ComplianceService(catalog, FakeProvider(claims), sink, dispatcher, clock)
    return _build


@pytest.mark.asyncio
class TestValidateClaim:
    async def test_validates_and_audits(self, service_factory, make_claim, sink):
        service = service_factory(make_claim("CLM-1"))
        report = await service.validate_claim("CLM-1")

        assert report.overall_status.value == "pass"
        assert service.reports == [report]
        assert [e.event_type for e in sink.events] == ["risk_assessed"]
        assert sink.events[0].details["fingerprint"] == report.fingerprint
        assert AuditService.verify_chain(sink.events)["valid"] is True

    async def test_unknown_claim_propagates(self, service_factory):
        service = service_factory()
        with pytest.raises(LookupError, match="CLM-404"):
            await service.validate_claim("CLM-404")

    async def test_tampered_chain_detected(self, service_factory, make_claim, sink):
        service = service_factory(make_claim("CLM-1"), make_claim("CLM-2"))
        await service.validate_claim("CLM-1")
        await service.validate_claim("CLM-2")
        sink.events[0].details["risk_score"] = 99.0

        check = AuditService.verify_chain(sink.events)
        assert check["valid"] is False
        assert check["first_invalid"] == sink.events[0].event_id


@pytest.mark.asyncio
class TestBatch:
    async def test_results_sorted_by_claim_id(self, service_factory, make_claim):
        service = service_factory()
        snapshots = [make_claim(f"CLM-{i}") for i in (5, 3, 9, 1)]
        result = await service.validate_snapshots(snapshots, max_concurrency=2, batch_id="RUN-TEST")

        assert result.batch_id == "RUN-TEST"
        assert [r.claim_id for r in result.reports] == ["CLM-1", "CLM-3", "CLM-5", "CLM-9"]
        assert result.by_status == {"pass": 4}
        assert result.failed == 0

    async def test_one_bad_claim_does_not_abort_batch(self, service_factory, make_claim, monkeypatch):
        service = service_factory()
        original = service.engine.validate

        def flaky(claim, recent_reports=()):
            if claim.claim_id == "CLM-2":
                raise RuntimeError("snapshot unreadable")
            return original(claim, recent_reports)

        monkeypatch.setattr(service.engine, "validate", flaky)
        result = await service.validate_snapshots([make_claim(f"CLM-{i}") for i in range(1, 4)])

        assert result.completed == 2
        assert result.errors == {"CLM-2": "RuntimeError: snapshot unreadable"}
        assert result.to_dict()["failed"] == 1

    async def test_concurrency_must_be_positive(self, service_factory, make_claim):
        service = service_factory()
        with pytest.raises(ValueError):
            await service.validate_snapshots([make_claim()], max_concurrency=-1)


@pytest.mark.asyncio
class TestMonitoring:
    async def _flagged_service(self, service_factory, make_claim):
        service = service_factory()
        await service.validate_snapshots([make_claim(f"CLM-{i}", provider=TERMINATED) for i in range(10)])
        return service

    async def test_new_alerts_dispatched_and_audited(self, service_factory, make_claim, sink, dispatcher):
        service = await self._flagged_service(service_factory, make_claim)
        dashboard = await service.refresh_monitoring()

        assert len(dashboard.new_alerts) == 6
        assert dispatcher.alerts == list(dashboard.new_alerts)
        created = [e for e in sink.events if e.event_type == "alert_created"]
        assert {e.resource_id for e in created} == {a.id for a in dashboard.new_alerts}
        assert AuditService.verify_chain(sink.events)["valid"] is True

    async def test_second_refresh_dispatches_nothing(self, service_factory, make_claim, dispatcher):
        service = await self._flagged_service(service_factory, make_claim)
        await service.refresh_monitoring()
        dispatched = len(dispatcher.alerts)

        dashboard = await service.refresh_monitoring()
        assert dashboard.new_alerts == ()
        assert len(dispatcher.alerts) == dispatched

    async def test_acknowledge_audited_once(self, service_factory, make_claim, sink):
        service = await self._flagged_service(service_factory, make_claim)
        dashboard = await service.refresh_monitoring()
        alert_id = dashboard.new_alerts[0].id

        await service.acknowledge_alert(alert_id, "analyst@example.com", "looking into it")
        alert = await service.acknowledge_alert(alert_id, "analyst@example.com")

        acks = [e for e in sink.events if e.event_type == "alert_acknowledged"]
        assert len(acks) == 1
        assert acks[0].actor == "analyst@example.com"
        assert alert.acknowledgment_note == "looking into it"

    async def test_acknowledge_unknown_alert(self, service_factory):
        with pytest.raises(ValueError, match="not found"):
            await service_factory().acknowledge_alert("ALERT-MISSING", "x")


@pytest.mark.asyncio
class TestConcurrency:
    async def test_concurrent_claims_keep_one_audit_chain(self, catalog, clock, make_claim, dispatcher):
        claims = [make_claim(f"CLM-{i}") for i in range(5)]
        sink = YieldingSink()
        service = ComplianceService(catalog, FakeProvider(claims), sink, dispatcher, clock)

        await asyncio.gather(*(service.validate_claim(c.claim_id) for c in claims))

        assert len(sink.events) == 5
        assert sink.events[0].previous_hash is None
        assert [e.previous_hash for e in sink.events[1:]] == [e.current_hash for e in sink.events[:-1]]
        assert AuditService.verify_chain(sink.events)["valid"] is True

    async def test_batch_revalidation_sees_claim_history(self, service_factory, make_claim):
        suspended = ProviderInfo(npi="1234567893", taxonomy_code="207Q00000X",
                                 enrollment_status="suspended", enrollment_date=date(2020, 1, 1))
        claim = make_claim("CLM-7", provider=suspended)
        service = service_factory(claim)
        await service.validate_claim("CLM-7")

        result = await service.validate_snapshots([claim])

        patterns = result.reports[0].risk_assessment.patterns_detected
        assert [p.pattern.value for p in patterns] == ["provider_enrollment"]
        assert patterns[0].frequency == 2

    async def test_batch_without_history_has_no_patterns(self, service_factory, make_claim):
        claim = make_claim("CLM-8", provider=TERMINATED)
        result = await service_factory().validate_snapshots([claim])
        assert result.reports[0].risk_assessment.patterns_detected == ()
