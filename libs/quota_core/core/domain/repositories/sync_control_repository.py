from abc import ABC, abstractmethod
from datetime import datetime

from quota_core.core.domain.entities.sync_control_entity import SyncControlEntity


class SyncControlRepository(ABC):
    @abstractmethod
    def get(self, clinic_id: str, pms_type: str) -> SyncControlEntity | None:
        ...

    @abstractmethod
    def save(self, control: SyncControlEntity) -> SyncControlEntity:
        ...

    @abstractmethod
    def list_due(self, now: datetime) -> list[SyncControlEntity]:
        """Enabled controls whose next_sync_at is empty or already passed."""
        ...
