"""
Compliance alerts and the in-memory alert ledger.

Alerts are never deleted; the only mutation is acknowledgment, which is
idempotent. Open alerts are keyed so repeated evaluations of the same
condition do not raise duplicates.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4

from claim_compliance.enums import AlertSeverity

logger = logging.getLogger(__name__)


@dataclass
class Alert:
    id: str
    key: str                   # dedup key: one open alert per condition
    type: str                  # "error" | "warning" | "info"
    severity: AlertSeverity
    color: str
    title: str
    description: str
    affected_claims: int
    action_required: str
    created_at: datetime
    deadline: str | None = None
    metric: str | None = None
    value: float | None = None
    acknowledged: bool = False
    acknowledged_by: str | None = None
    acknowledged_at: datetime | None = None
    acknowledgment_note: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "severity": self.severity.value,
            "color": self.color,
            "title": self.title,
            "description": self.description,
            "deadline": self.deadline,
            "affected_claims": self.affected_claims,
            "action_required": self.action_required,
            "metric": self.metric,
            "value": self.value,
            "created_at": self.created_at.isoformat(),
            "acknowledged": self.acknowledged,
            "acknowledged_by": self.acknowledged_by,
            "acknowledged_at": self.acknowledged_at.isoformat() if self.acknowledged_at else None,
            "acknowledgment_note": self.acknowledgment_note,
        }


def new_alert_id() -> str:
    return f"ALERT-{uuid4().hex[:12].upper()}"


class AlertBook:
    """Append-only alert ledger."""

    def __init__(self):
        self._alerts: dict[str, Alert] = {}

    def __len__(self) -> int:
        return len(self._alerts)

    def add(self, alert: Alert) -> bool:
        """Store an alert unless an open alert with the same key exists. Returns True when stored."""
        if self.open_with_key(alert.key) is not None:
            return False
        self._alerts[alert.id] = alert
        return True

    def open_with_key(self, key: str) -> Alert | None:
        return next((a for a in self._alerts.values() if a.key == key and not a.acknowledged), None)

    def get(self, alert_id: str) -> Alert:
        alert = self._alerts.get(alert_id)
        if alert is None:
            raise ValueError(f"Alert {alert_id} not found")
        return alert

    def all(self) -> list[Alert]:
        return sorted(self._alerts.values(), key=lambda a: (a.created_at, a.id))

    def open_alerts(self) -> list[Alert]:
        return [a for a in self.all() if not a.acknowledged]

    def acknowledge(
        self,
        alert_id: str,
        acknowledged_by: str,
        acknowledged_at: datetime,
        note: str | None = None,
    ) -> tuple[Alert, bool]:
        """Acknowledge an alert. Returns (alert, changed); a repeat call changes nothing."""
        alert = self.get(alert_id)
        if alert.acknowledged:
            return alert, False
        alert.acknowledged = True
        alert.acknowledged_by = acknowledged_by
        alert.acknowledged_at = acknowledged_at
        alert.acknowledgment_note = note
        logger.info("Alert %s acknowledged by %s", alert_id, acknowledged_by)
        return alert, True
