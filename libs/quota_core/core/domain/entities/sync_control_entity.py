from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from quota_core.core.domain.entities._base import EntityMixin


@dataclass(slots=True)
class SyncControlEntity(EntityMixin):
    clinic_id: uuid.UUID
    pms_type: str
    is_enabled: bool = True
    last_sync_at: datetime | None = None
    next_sync_at: datetime | None = None

    def is_due(self, now: datetime) -> bool:
        return self.is_enabled and (self.next_sync_at is None or self.next_sync_at <= now)
