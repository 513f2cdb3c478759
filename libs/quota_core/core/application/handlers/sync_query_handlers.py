from quota_core.core.application.cqrs import QueryHandler
from quota_core.core.application.queries.sync_queries import (
    GetSyncControlQuery,
    GetSyncLogQuery,
    ListSyncLogsQuery,
)
from quota_core.core.domain.entities.sync_control_entity import SyncControlEntity
from quota_core.core.domain.entities.sync_log_entity import SyncLogEntity
from quota_core.core.domain.events.exceptions import SyncLogNotFoundError
from quota_core.core.domain.repositories.sync_control_repository import SyncControlRepository
from quota_core.core.domain.repositories.sync_log_repository import SyncLogRepository


class GetSyncLogHandler(QueryHandler[GetSyncLogQuery, SyncLogEntity]):
    def __init__(self, sync_log_repo: SyncLogRepository):
        self.repo = sync_log_repo

    def handle(self, query: GetSyncLogQuery) -> SyncLogEntity:
        log = self.repo.find_by_id(query.id)
        if log is None or str(log.clinic_id) != str(query.clinic_id):
            raise SyncLogNotFoundError(f"Sync log {query.id} not found")
        return log


class ListSyncLogsHandler(QueryHandler[ListSyncLogsQuery, list[SyncLogEntity]]):
    def __init__(self, sync_log_repo: SyncLogRepository):
        self.repo = sync_log_repo

    def handle(self, query: ListSyncLogsQuery) -> list[SyncLogEntity]:
        return self.repo.list_recent(query.clinic_id, limit=max(1, query.limit))


class GetSyncControlHandler(QueryHandler[GetSyncControlQuery, SyncControlEntity | None]):
    def __init__(self, sync_control_repo: SyncControlRepository):
        self.repo = sync_control_repo

    def handle(self, query: GetSyncControlQuery) -> SyncControlEntity | None:
        return self.repo.get(query.clinic_id, query.pms_type)
