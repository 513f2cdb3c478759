from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from quota_core.core.domain.entities._base import EntityMixin

SyncStatus = Literal["running", "completed", "failed"]
SyncType = Literal["manual", "scheduled", "onboarding"]


@dataclass(slots=True)
class SyncLogEntity(EntityMixin):
    id: uuid.UUID
    clinic_id: uuid.UUID
    pms_type: str
    sync_type: SyncType
    status: SyncStatus
    patients_processed: int = 0
    patients_added: int = 0
    patients_updated: int = 0
    appointments_synced: int = 0
    cases_created: int = 0
    cases_updated: int = 0
    issues: list[str] = field(default_factory=list)
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
