from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ───────────────────────────────────────────────
# Base event
# ───────────────────────────────────────────────
@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    event_id: uuid.UUID = field(default_factory=uuid.uuid4)
    occurred_at: datetime = field(default_factory=_utcnow)

# ╭──────────────────────────────────────────────╮
# │ 1. Quota sync                                │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True)
class QuotaSyncCompletedEvent(DomainEvent):
    clinic_id: uuid.UUID
    pms_type: str
    sync_log_id: uuid.UUID
    sync_type: str
    cases_created: int
    cases_updated: int
    issues: int

@dataclass(frozen=True)
class QuotaSyncFailedEvent(DomainEvent):
    clinic_id: uuid.UUID
    pms_type: str
    sync_log_id: uuid.UUID
    sync_type: str
    error: str

# ╭──────────────────────────────────────────────╮
# │ 2. Cases                                     │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True)
class CaseAlertRaisedEvent(DomainEvent):
    case_id: uuid.UUID
    clinic_id: uuid.UUID
    patient_id: uuid.UUID
    program_type: str
    remaining_sessions: int
    alert_message: str

# ╭──────────────────────────────────────────────╮
# │ 3. Clinic settings                           │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True)
class ClinicSettingsUpdatedEvent(DomainEvent):
    clinic_id: uuid.UUID
    wc_tags: tuple[str, ...]
    epc_tags: tuple[str, ...]
    overlapping_tags: tuple[str, ...] = ()
