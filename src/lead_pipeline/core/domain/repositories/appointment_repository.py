from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from lead_pipeline.core.domain.entities.appointment_entity import AppointmentEntity


class AppointmentRepository(ABC):
    @abstractmethod
    def find_by_id(self, clinic_id: str, appointment_id: str) -> AppointmentEntity | None:
        ...

    @abstractmethod
    def find_overlapping(
        self, clinic_id: str, start_at: datetime, end_at: datetime, exclude_id: str | None = None
    ) -> AppointmentEntity | None:
        """Primeira cita `scheduled` com `start < end_at AND end > start_at`."""
        ...

    @abstractmethod
    def create(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        lead_id: str | None,
        lead_name: str | None,
        lead_phone: str | None,
        title: str,
        notes: str | None,
        start_at: datetime,
        end_at: datetime,
        source_channel: str,
        created_by: str,
    ) -> AppointmentEntity:
        """Levanta SlotUnavailableError se já houver cita ativa no mesmo início."""
        ...

    @abstractmethod
    def reschedule(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        appointment_id: str,
        start_at: datetime,
        end_at: datetime,
        title: str | None = None,
        notes: str | None = None,
    ) -> AppointmentEntity:
        """Mesma garantia de unicidade do `create`."""
        ...

    @abstractmethod
    def set_status(self, clinic_id: str, appointment_id: str, status: str) -> AppointmentEntity:
        ...

    @abstractmethod
    def set_external_event_id(self, clinic_id: str, appointment_id: str, external_event_id: str) -> None:
        ...

    @abstractmethod
    def list_range(self, clinic_id: str, start_at: datetime, end_at: datetime) -> list[AppointmentEntity]:
        ...
