from abc import ABC, abstractmethod
from datetime import datetime

from lead_pipeline.core.domain.entities.current_call_entity import CurrentCallEntity


class CurrentCallRepository(ABC):
    @abstractmethod
    def get(self, clinic_id: str) -> CurrentCallEntity:
        ...

    @abstractmethod
    def set_current(self, clinic_id: str, external_call_id: str, lead_id: str | None, started_at: datetime) -> None:
        ...

    @abstractmethod
    def clear(self, clinic_id: str, external_call_id: str) -> None:
        """Limpa apenas se a ligação em curso for a informada."""
        ...
