from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog

from lead_pipeline.adapters.observability.metrics import AVAILABILITY_CONFLICTS
from lead_pipeline.core.domain.events.exceptions import SlotUnavailableError
from lead_pipeline.core.domain.repositories.appointment_repository import AppointmentRepository
from lead_pipeline.core.domain.repositories.busy_block_repository import BusyBlockRepository
from lead_pipeline.core.domain.repositories.calendar_event_repository import CalendarEventRepository

logger = structlog.get_logger(__name__)

SOURCE_APPOINTMENT = "appointment"
SOURCE_BUSY_BLOCK = "busy_block"
SOURCE_CALENDAR_EVENT = "calendar_event"

CONFLICT_MESSAGES = {
    SOURCE_APPOINTMENT: "Ese bloque ya esta ocupado por otra cita.",
    SOURCE_BUSY_BLOCK: "Ese bloque coincide con un bloqueo interno.",
    SOURCE_CALENDAR_EVENT: "Ese horario ya aparece ocupado en Google Calendar.",
}


@dataclass(frozen=True, slots=True)
class AvailabilityResult:
    available: bool
    conflict_source: str | None = None
    conflict_id: str | None = None

    @property
    def error(self) -> str | None:
        return CONFLICT_MESSAGES.get(self.conflict_source) if self.conflict_source else None


class AvailabilityService:
    """
    Verifica se `[start_at, end_at)` está livre nas três fontes de ocupação,
    parando no primeiro conflito. Intervalos que apenas se tocam não conflitam.
    """

    def __init__(
        self,
        appointment_repo: AppointmentRepository,
        busy_block_repo: BusyBlockRepository,
        calendar_event_repo: CalendarEventRepository,
    ):
        self.appointment_repo = appointment_repo
        self.busy_block_repo = busy_block_repo
        self.calendar_event_repo = calendar_event_repo

    def check(  # noqa: PLR0913
        self,
        clinic_id: str,
        start_at: datetime,
        end_at: datetime,
        exclude_appointment_id: str | None = None,
        exclude_busy_block_id: str | None = None,
    ) -> AvailabilityResult:
        appt = self.appointment_repo.find_overlapping(
            clinic_id, start_at, end_at, exclude_id=exclude_appointment_id
        )
        if appt:
            return self._conflict(clinic_id, SOURCE_APPOINTMENT, appt.id)

        block = self.busy_block_repo.find_overlapping(
            clinic_id, start_at, end_at, exclude_id=exclude_busy_block_id
        )
        if block:
            return self._conflict(clinic_id, SOURCE_BUSY_BLOCK, block.id)

        event = self.calendar_event_repo.find_busy_overlapping(clinic_id, start_at, end_at)
        if event:
            return self._conflict(clinic_id, SOURCE_CALENDAR_EVENT, event.id)

        return AvailabilityResult(available=True)

    def ensure_available(  # noqa: PLR0913
        self,
        clinic_id: str,
        start_at: datetime,
        end_at: datetime,
        exclude_appointment_id: str | None = None,
        exclude_busy_block_id: str | None = None,
    ) -> None:
        """Igual a `check`, mas levanta SlotUnavailableError no conflito."""
        result = self.check(
            clinic_id, start_at, end_at,
            exclude_appointment_id=exclude_appointment_id,
            exclude_busy_block_id=exclude_busy_block_id,
        )
        if not result.available:
            raise SlotUnavailableError(result.error, source=result.conflict_source)

    @staticmethod
    def _conflict(clinic_id: str, source: str, row_id) -> AvailabilityResult:
        AVAILABILITY_CONFLICTS.labels(source).inc()
        logger.info("availability.conflict", clinic_id=str(clinic_id), source=source, conflict_id=str(row_id))
        return AvailabilityResult(available=False, conflict_source=source, conflict_id=str(row_id))
