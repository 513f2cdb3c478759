from __future__ import annotations

from dataclasses import dataclass

from quota_core.core.domain.entities.quota_policy_entity import FundingScheme

URGENT_THRESHOLD = 0
EXPIRING_THRESHOLD = 2
LOW_THRESHOLD = 3


@dataclass(frozen=True, slots=True)
class CaseStatusResult:
    status: str
    priority: str
    alert_message: str | None

    @property
    def is_alert_active(self) -> bool:
        return self.alert_message is not None


def derive_case_status(scheme: FundingScheme | str, remaining: int) -> CaseStatusResult:
    # strictest band first: remaining=0 is critical, never warning
    label = str(scheme)
    if remaining <= URGENT_THRESHOLD:
        return CaseStatusResult(
            "critical", "urgent", f"{label} quota exhausted - renewal needed immediately"
        )
    if remaining <= EXPIRING_THRESHOLD:
        return CaseStatusResult(
            "warning", "high", f"{label} referral expires soon - {remaining} sessions left"
        )
    if remaining <= LOW_THRESHOLD:
        return CaseStatusResult(
            "warning", "normal", f"{label} sessions running low - {remaining} sessions left"
        )
    return CaseStatusResult("active", "low", None)
