from abc import ABC, abstractmethod

from quota_core.core.domain.entities.sync_log_entity import SyncLogEntity


class SyncLogRepository(ABC):
    @abstractmethod
    def start(self, clinic_id: str, pms_type: str, sync_type: str) -> SyncLogEntity:
        """Opens a new log in the `running` state."""
        ...

    @abstractmethod
    def complete(self, log: SyncLogEntity) -> SyncLogEntity:
        """Single completing update: counters, issues, status=completed."""
        ...

    @abstractmethod
    def fail(self, log_id: str, error_message: str) -> SyncLogEntity:
        ...

    @abstractmethod
    def find_by_id(self, log_id: str) -> SyncLogEntity | None:
        ...

    @abstractmethod
    def list_recent(self, clinic_id: str, limit: int = 10) -> list[SyncLogEntity]:
        """Newest first."""
        ...
