from abc import ABC, abstractmethod

from lead_pipeline.core.domain.entities.appointment_entity import AppointmentEntity


class CalendarExporter(ABC):
    """Espelha citas no calendário externo da clínica."""

    @abstractmethod
    def export_appointment(self, appointment: AppointmentEntity, clinic_id: str) -> str | None:
        """Cria/atualiza o evento externo e devolve seu id (None se não houver)."""
        ...
