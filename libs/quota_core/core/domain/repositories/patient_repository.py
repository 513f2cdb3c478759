from abc import ABC, abstractmethod

from quota_core.core.application.cqrs import PagedResult
from quota_core.core.domain.entities.patient_entity import PatientEntity


class PatientRepository(ABC):
    @abstractmethod
    def find_by_id(self, patient_id: str) -> PatientEntity | None:
        ...

    @abstractmethod
    def find_by_clinic(self, clinic_id: str, pms_type: str) -> list[PatientEntity]:
        """Every patient synced from the given PMS for a clinic."""
        ...

    @abstractmethod
    def upsert(self, patient: PatientEntity) -> tuple[PatientEntity, bool]:
        """
        Creates or updates the patient keyed on (clinic, pms_type, pms_patient_id).
        Quota fields are owned by the reconciliation and are not touched here.
        Returns (patient, created).
        """
        ...

    @abstractmethod
    def update_quota(
        self, patient_id: str, *, program_type: str, sessions_used: int, quota: int | None
    ) -> None:
        ...

    @abstractmethod
    def list(self, filtros: dict, page: int, page_size: int) -> PagedResult[PatientEntity]:
        ...
