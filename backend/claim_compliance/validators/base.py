"""
Base validator class for the six compliance categories.

Every validator implements `validate()` which takes a claim snapshot,
the rule catalog and the current instant, and returns a CategoryResult.
Validators are pure: missing data becomes an issue, never an exception.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Any

from claim_compliance.catalog.models import RuleCatalog
from claim_compliance.enums import ValidationCategory, ValidationStatus
from claim_compliance.schemas.claim import ClaimSnapshot


@dataclass(frozen=True)
class CategoryResult:
    """Outcome of one category validator for one claim."""
    category: ValidationCategory
    status: ValidationStatus
    issues: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    details: Mapping[str, Any] = field(default_factory=dict)   # category-specific, JSON-ready

    def __post_init__(self):
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "issues": list(self.issues),
            "warnings": list(self.warnings),
            **self.details,
        }


class BaseValidator(ABC):
    """Abstract base class for category validators."""

    category: ValidationCategory

    @abstractmethod
    def validate(self, claim: ClaimSnapshot, catalog: RuleCatalog, now: datetime) -> CategoryResult:
        pass

    def _result(
        self,
        issues: list[str],
        warnings: list[str],
        status: ValidationStatus | None = None,
        **details,
    ) -> CategoryResult:
        """Build a result; without an explicit status, issues fail and warnings warn."""
        if status is None:
            if issues:
                status = ValidationStatus.FAILED
            elif warnings:
                status = ValidationStatus.WARNING
            else:
                status = ValidationStatus.PASS
        return CategoryResult(
            category=self.category,
            status=status,
            issues=tuple(issues),
            warnings=tuple(warnings),
            details=details,
        )
