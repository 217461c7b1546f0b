"""
Audit Service

Hash-chained audit events for risk assessments and alert lifecycle.
Each event's hash covers its content and the previous event's hash;
events are handed to an injected sink, the engine keeps only the chain head.
"""

import asyncio
import hashlib
import json
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Protocol
from uuid import uuid4

from claim_compliance.clock import Clock, SystemClock


@dataclass(frozen=True)
class AuditEvent:
    event_id: str
    event_type: str
    actor: str
    action: str
    resource_type: str | None
    resource_id: str | None
    details: dict
    created_at: datetime
    previous_hash: str | None
    current_hash: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data


class AuditSink(Protocol):
    async def emit(self, event: AuditEvent) -> None:
        ...


class AuditService:
    """Hash-chained audit trail emitted to a sink."""

    def __init__(self, sink: AuditSink, clock: Clock | None = None, last_hash: str | None = None):
        self.sink = sink
        self.clock = clock or SystemClock()
        self._last_hash = last_hash
        self._lock = asyncio.Lock()

    @property
    def last_hash(self) -> str | None:
        return self._last_hash

    @staticmethod
    def _calculate_hash(content: dict, previous_hash: str | None) -> str:
        """SHA-256 hash of entry contents + previous hash."""
        payload = {
            "content": content,
            "previous_hash": previous_hash or "",
        }
        raw = json.dumps(payload, sort_keys=True, default=str)
        return hashlib.sha256(raw.encode()).hexdigest()

    async def log_event(
        self,
        event_type: str,
        actor: str,
        action: str,
        resource_type: str | None = None,
        resource_id: str | None = None,
        details: dict | None = None,
    ) -> AuditEvent:
        """
        Emit a hash-chained audit event.

        Args:
            event_type: e.g. "risk_assessed", "alert_created", "alert_acknowledged"
            actor: e.g. "system", "analyst@example.com"
            action: Human-readable description
            resource_type: "claim" or "alert"
            resource_id: The ID of the affected resource
            details: Full event details as dict
        """
        entry_details = details or {}
        content_for_hash = {
            "event_type": event_type,
            "actor": actor,
            "action": action,
            "resource_type": resource_type,
            "resource_id": resource_id,
            "details": entry_details,
        }
        # Reading the head, emitting and advancing it is one step for concurrent callers
        async with self._lock:
            current_hash = self._calculate_hash(content_for_hash, self._last_hash)

            event = AuditEvent(
                event_id=str(uuid4()),
                event_type=event_type,
                actor=actor,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                details=entry_details,
                created_at=self.clock.now(),
                previous_hash=self._last_hash,
                current_hash=current_hash,
            )
            await self.sink.emit(event)
            self._last_hash = current_hash
        return event

    async def log_risk_assessed(self, claim_id: str, overall_status: str, risk_score: float, risk_level: str,
                                fingerprint: str) -> AuditEvent:
        return await self.log_event(
            event_type="risk_assessed",
            actor="system",
            action=f"Claim {claim_id} {overall_status}: risk {risk_score:.2f} ({risk_level})",
            resource_type="claim",
            resource_id=claim_id,
            details={"overall_status": overall_status, "risk_score": risk_score,
                     "risk_level": risk_level, "fingerprint": fingerprint},
        )

    async def log_alert_created(self, alert_id: str, severity: str, title: str) -> AuditEvent:
        return await self.log_event(
            event_type="alert_created",
            actor="system",
            action=f"Alert {alert_id} raised ({severity}): {title}",
            resource_type="alert",
            resource_id=alert_id,
            details={"severity": severity, "title": title},
        )

    async def log_alert_acknowledged(self, alert_id: str, actor: str, note: str | None) -> AuditEvent:
        return await self.log_event(
            event_type="alert_acknowledged",
            actor=actor,
            action=f"Alert {alert_id} acknowledged",
            resource_type="alert",
            resource_id=alert_id,
            details={"note": note},
        )

    @classmethod
    def verify_chain(cls, events: list[AuditEvent]) -> dict:
        """Recompute hashes over an ordered event list and report the first break."""
        previous_hash = events[0].previous_hash if events else None
        for index, event in enumerate(events):
            content = {
                "event_type": event.event_type,
                "actor": event.actor,
                "action": event.action,
                "resource_type": event.resource_type,
                "resource_id": event.resource_id,
                "details": event.details,
            }
            if event.previous_hash != previous_hash or cls._calculate_hash(content, previous_hash) != event.current_hash:
                return {"valid": False, "entries_checked": index + 1, "first_invalid": event.event_id}
            previous_hash = event.current_hash
        return {"valid": True, "entries_checked": len(events), "first_invalid": None}
