from dataclasses import dataclass
from datetime import datetime

from lead_pipeline.core.application.cqrs import QueryDTO


@dataclass(frozen=True, slots=True)
class CheckSlotAvailabilityQuery(QueryDTO):
    """Valida o intervalo (cita ou bloqueio) e verifica as três fontes de ocupação."""
    clinic_id: str
    time_zone: str
    start_at: datetime | str | None
    end_at: datetime | str | None = None
    exclude_appointment_id: str | None = None
    exclude_busy_block_id: str | None = None
    kind: str = "appointment"  # appointment | busy_block


@dataclass(frozen=True, slots=True)
class ListAppointmentsQuery(QueryDTO):
    clinic_id: str
    start_at: datetime
    end_at: datetime


@dataclass(frozen=True, slots=True)
class ListBusyBlocksQuery(QueryDTO):
    clinic_id: str
    start_at: datetime
    end_at: datetime
