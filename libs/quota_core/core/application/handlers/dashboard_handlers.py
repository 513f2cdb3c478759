from quota_core.core.application.cqrs import QueryHandler
from quota_core.core.application.dtos.dashboard_dto import LastSyncDTO, QuotaDashboardDTO
from quota_core.core.application.queries.dashboard_queries import GetQuotaDashboardQuery
from quota_core.core.domain.repositories.case_repository import CaseRepository
from quota_core.core.domain.repositories.sync_log_repository import SyncLogRepository


class GetQuotaDashboardHandler(QueryHandler[GetQuotaDashboardQuery, QuotaDashboardDTO]):
    """Case totals plus the latest sync run for one clinic."""

    def __init__(self, case_repo: CaseRepository, sync_log_repo: SyncLogRepository):
        self.case_repo = case_repo
        self.sync_log_repo = sync_log_repo

    def handle(self, query: GetQuotaDashboardQuery) -> QuotaDashboardDTO:
        summary = self.case_repo.summary(query.clinic_id)
        recent = self.sync_log_repo.list_recent(query.clinic_id, limit=1)
        last = recent[0] if recent else None
        return QuotaDashboardDTO(
            total_cases=summary["total"],
            by_status=summary["by_status"],
            by_program=summary["by_program"],
            action_needed=summary["action_needed"],
            overdue=summary["overdue"],
            last_sync=LastSyncDTO(
                id=str(last.id),
                status=last.status,
                sync_type=last.sync_type,
                started_at=last.started_at.isoformat() if last.started_at else None,
                completed_at=last.completed_at.isoformat() if last.completed_at else None,
                cases_created=last.cases_created,
                cases_updated=last.cases_updated,
                issues=len(last.issues),
            ) if last else None,
        )
