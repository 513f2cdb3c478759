from abc import ABC, abstractmethod

from quota_core.core.application.cqrs import PagedResult
from quota_core.core.domain.entities.case_entity import CaseEntity


class CaseRepository(ABC):
    @abstractmethod
    def upsert(self, case: CaseEntity) -> tuple[CaseEntity, bool]:
        """
        Atomic create-or-update keyed on (clinic, patient, pms_type).
        On update every derived field is overwritten and the row keeps its id.
        Returns (case, created).
        """
        ...

    @abstractmethod
    def find_by_id(self, case_id: str) -> CaseEntity | None:
        ...

    @abstractmethod
    def save(self, case: CaseEntity) -> CaseEntity:
        ...

    @abstractmethod
    def list(self, filtros: dict, page: int, page_size: int) -> PagedResult[CaseEntity]:
        """
        Supported filters: clinic_id, status, priority, program_type,
        is_alert_active, search (patient name or case number).
        """
        ...

    @abstractmethod
    def summary(self, clinic_id: str) -> dict:
        """
        Aggregates for the dashboard:
        {"total", "by_status", "by_program", "action_needed", "overdue"}.
        """
        ...
