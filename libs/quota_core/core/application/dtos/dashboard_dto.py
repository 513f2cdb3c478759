from dataclasses import dataclass, field


@dataclass(frozen=True)
class LastSyncDTO:
    id: str
    status: str
    sync_type: str
    started_at: str | None
    completed_at: str | None
    cases_created: int
    cases_updated: int
    issues: int


@dataclass(frozen=True)
class QuotaDashboardDTO:
    total_cases: int
    by_status: dict[str, int] = field(default_factory=dict)
    by_program: dict[str, int] = field(default_factory=dict)
    action_needed: int = 0
    overdue: int = 0
    last_sync: LastSyncDTO | None = None
