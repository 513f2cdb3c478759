from abc import ABC, abstractmethod

from quota_core.core.domain.entities.appointment_entity import AppointmentEntity


class AppointmentRepository(ABC):
    @abstractmethod
    def find_by_clinic(self, clinic_id: str, pms_type: str) -> list[AppointmentEntity]:
        ...

    @abstractmethod
    def upsert(self, appointment: AppointmentEntity) -> tuple[AppointmentEntity, bool]:
        """Keyed on (clinic, pms_type, pms_appointment_id); later syncs may correct the status."""
        ...
