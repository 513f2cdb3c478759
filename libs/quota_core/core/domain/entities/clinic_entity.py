from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime

from quota_core.core.domain.entities._base import EntityMixin


@dataclass(slots=True)
class ClinicEntity(EntityMixin):
    id: uuid.UUID
    name: str
    pms_type: str
    wc_tags: list[str] = field(default_factory=list)
    epc_tags: list[str] = field(default_factory=list)
    wc_quota: int | None = None
    epc_quota: int | None = None
    subscription_status: str = "trial"
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_subscribed(self) -> bool:
        return self.subscription_status in {"active", "trial"}
