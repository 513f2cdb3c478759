from abc import ABC, abstractmethod

from quota_core.core.domain.entities.clinic_entity import ClinicEntity


class ClinicRepository(ABC):
    @abstractmethod
    def find_by_id(self, clinic_id: str) -> ClinicEntity | None:
        ...

    @abstractmethod
    def save(self, clinic: ClinicEntity) -> ClinicEntity:
        """Creates or updates a clinic, tags and quota overrides included."""
        ...
