from collections.abc import Sequence
from typing import Any

from quota_core.core.application.commands.sync_commands import (
    RunQuotaSyncCommand,
    SetSyncEnabledCommand,
)
from quota_core.core.application.cqrs import CommandBus, QueryBus
from quota_core.core.application.dtos.sync_dto import QuotaSyncResult
from quota_core.core.application.queries.sync_queries import ListSyncLogsQuery


class QuotaSyncService:
    """
    Single entry point used by every trigger (API, management command,
    Celery beat, onboarding) so they all run the same pipeline.
    """

    def __init__(
        self,
        command_bus: CommandBus,
        query_bus: QueryBus,
    ) -> None:
        self._commands = command_bus
        self._queries = query_bus

    def full_sync(
        self,
        clinic_id: str,
        pms_type: str,
        patients: Sequence[dict] = (),
        appointments: Sequence[dict] = (),
        sync_type: str = "manual",
    ) -> QuotaSyncResult:
        """Ingests the given PMS records (if any) and reconciles the clinic's quotas."""
        cmd = RunQuotaSyncCommand(
            clinic_id     =str(clinic_id),
            pms_type      =pms_type,
            sync_type     =sync_type,
            patients      =list(patients),
            appointments  =list(appointments),
        )
        return self._commands.dispatch(cmd)

    def set_enabled(self, clinic_id: str, pms_type: str, enabled: bool) -> Any:
        return self._commands.dispatch(
            SetSyncEnabledCommand(clinic_id=str(clinic_id), pms_type=pms_type, is_enabled=enabled)
        )

    def recent_logs(self, clinic_id: str, limit: int = 10) -> Any:
        return self._queries.dispatch(ListSyncLogsQuery(clinic_id=str(clinic_id), limit=limit))
