from __future__ import annotations

from dataclasses import asdict, dataclass, field


@dataclass(frozen=True)
class IngestResult:
    patients_processed: int = 0
    patients_added: int = 0
    patients_updated: int = 0
    appointments_synced: int = 0
    issues: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class QuotaSyncResult:
    success: bool
    sync_log_id: str
    patients_processed: int = 0
    patients_added: int = 0
    patients_updated: int = 0
    appointments_synced: int = 0
    cases_created: int = 0
    cases_updated: int = 0
    issues: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)
