from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

import structlog
from django.utils import timezone

from quota_core.core.application.commands.case_commands import UpdateCaseCommand
from quota_core.core.application.cqrs import CommandHandler, PagedResult, QueryHandler
from quota_core.core.application.dtos.pms_dtos import coerce_date
from quota_core.core.application.queries.case_queries import (
    GetCaseQuery,
    ListCasesQuery,
    ListPatientsQuery,
)
from quota_core.core.domain.entities.case_entity import CaseEntity
from quota_core.core.domain.entities.patient_entity import PatientEntity
from quota_core.core.domain.events.exceptions import CaseNotFoundError, InvalidCaseActionError
from quota_core.core.domain.repositories.case_repository import CaseRepository
from quota_core.core.domain.repositories.patient_repository import PatientRepository
from quota_core.core.domain.services.case_status import derive_case_status
from quota_core.core.domain.services.quota_resolver import remaining_sessions

logger = structlog.get_logger(__name__)

PRIORITIES = ("low", "normal", "high", "urgent")


def _load_case(repo: CaseRepository, case_id: str, clinic_id: str) -> CaseEntity:
    case = repo.find_by_id(case_id)
    if case is None or str(case.clinic_id) != str(clinic_id):
        raise CaseNotFoundError(f"Case {case_id} not found")
    return case


class UpdateCaseHandler(CommandHandler[UpdateCaseCommand]):
    """Manual case actions taken from the dashboard."""

    def __init__(self, case_repo: CaseRepository, clock: Callable[[], datetime] = timezone.now):
        self.repo = case_repo
        self.clock = clock
        self._actions: dict[str, Callable[[CaseEntity, dict, datetime], None]] = {
            "update_quota": self._update_quota,
            "move_to_pending": self._move_to("pending", "Moved to pending"),
            "move_to_active": self._move_to("active", "Moved to active"),
            "archive_case": self._move_to("archived", "Case closed"),
            "update_priority": self._update_priority,
            "update_next_visit": self._update_next_visit,
        }

    def handle(self, cmd: UpdateCaseCommand) -> CaseEntity:
        action = self._actions.get(cmd.action)
        if action is None:
            raise InvalidCaseActionError(f"Unknown case action: {cmd.action}")
        case = _load_case(self.repo, cmd.case_id, cmd.clinic_id)
        action(case, dict(cmd.data or {}), self.clock())
        logger.info("case.updated", case_id=str(case.id), action=cmd.action, status=case.status)
        return self.repo.save(case)

    # ── actions ────────────────────────────────────
    @staticmethod
    def _update_quota(case: CaseEntity, data: dict, now: datetime) -> None:
        try:
            quota = int(data["quota"])
        except (KeyError, TypeError, ValueError) as exc:
            raise InvalidCaseActionError("update_quota requires an integer 'quota'") from exc
        if quota < case.sessions_used:
            raise InvalidCaseActionError(
                f"Quota {quota} is below the {case.sessions_used} sessions already used"
            )
        case.quota = quota
        case.remaining_sessions = remaining_sessions(quota, case.sessions_used)
        derived = derive_case_status(case.program_type, case.remaining_sessions)
        if derived.status != case.status:
            case.last_status_change = now
        case.status = derived.status
        case.priority = derived.priority
        case.alert_message = derived.alert_message
        case.is_alert_active = derived.is_alert_active
        case.status_change_reason = data.get("reason") or "Quota updated"

    @staticmethod
    def _move_to(status: str, default_reason: str):
        def apply(case: CaseEntity, data: dict, now: datetime) -> None:
            case.status = status
            case.status_change_reason = data.get("reason") or default_reason
            case.last_status_change = now
        apply.__name__ = f"move_to_{status}"
        return apply

    @staticmethod
    def _update_priority(case: CaseEntity, data: dict, now: datetime) -> None:
        priority = data.get("priority")
        if priority not in PRIORITIES:
            raise InvalidCaseActionError(f"Priority must be one of {', '.join(PRIORITIES)}")
        case.priority = priority
        case.status_change_reason = "Priority updated"

    @staticmethod
    def _update_next_visit(case: CaseEntity, data: dict, now: datetime) -> None:
        next_visit = coerce_date(data.get("next_visit_date"))
        if next_visit is None:
            raise InvalidCaseActionError("update_next_visit requires a valid 'next_visit_date'")
        case.next_visit_date = next_visit
        case.status_change_reason = "Next visit date updated"


class GetCaseHandler(QueryHandler[GetCaseQuery, CaseEntity]):
    def __init__(self, case_repo: CaseRepository):
        self.repo = case_repo

    def handle(self, query: GetCaseQuery) -> CaseEntity:
        return _load_case(self.repo, query.id, query.clinic_id)


class ListCasesHandler(QueryHandler[ListCasesQuery, PagedResult[CaseEntity]]):
    def __init__(self, case_repo: CaseRepository):
        self.repo = case_repo

    def handle(self, query: ListCasesQuery) -> PagedResult[CaseEntity]:
        return self.repo.list(filtros=query.filtros, page=query.page, page_size=query.page_size)


class ListPatientsHandler(QueryHandler[ListPatientsQuery, PagedResult[PatientEntity]]):
    def __init__(self, patient_repo: PatientRepository):
        self.repo = patient_repo

    def handle(self, query: ListPatientsQuery) -> PagedResult[PatientEntity]:
        return self.repo.list(filtros=query.filtros, page=query.page, page_size=query.page_size)
