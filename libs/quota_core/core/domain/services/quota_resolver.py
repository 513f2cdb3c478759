from __future__ import annotations

from dataclasses import dataclass

from quota_core.core.domain.entities.quota_policy_entity import (
    PRIVATE_PROGRAM,
    FundingScheme,
    QuotaPolicy,
)
from quota_core.core.domain.services.session_counter import SessionCounts


@dataclass(frozen=True, slots=True)
class QuotaResolution:
    program_type: str
    scheme: FundingScheme | None
    sessions_used: int
    quota: int | None
    remaining: int | None

    @property
    def needs_case(self) -> bool:
        return self.scheme is not None


def remaining_sessions(quota: int, sessions_used: int) -> int:
    return max(0, quota - sessions_used)


def resolve_quota(
    counts: SessionCounts,
    policy: QuotaPolicy,
    prior_program_type: str | None = None,
) -> QuotaResolution:
    """
    WC wins over EPC when a patient has sessions under both. A patient with
    no funded sessions keeps its previous program (or becomes Private) and
    carries no quota.
    """
    if counts.wc > 0:
        scheme, used = FundingScheme.WC, counts.wc
    elif counts.epc > 0:
        scheme, used = FundingScheme.EPC, counts.epc
    else:
        return QuotaResolution(
            program_type=prior_program_type or PRIVATE_PROGRAM,
            scheme=None,
            sessions_used=0,
            quota=None,
            remaining=None,
        )

    quota = policy.quota_for(scheme)
    return QuotaResolution(
        program_type=scheme.value,
        scheme=scheme,
        sessions_used=used,
        quota=quota,
        remaining=remaining_sessions(quota, used),
    )
