from abc import ABC, abstractmethod

from lead_pipeline.core.domain.entities.clinic_entity import ClinicEntity


class ClinicRepository(ABC):
    @abstractmethod
    def find_by_id(self, clinic_id: str) -> ClinicEntity | None:
        ...
