import uuid
from dataclasses import dataclass
from datetime import datetime

from lead_pipeline.core.domain.entities._base import EntityMixin


@dataclass(slots=True)
class CalendarEventEntity(EntityMixin):
    """Espelho somente-leitura de um evento do calendário externo."""
    id: uuid.UUID
    clinic_id: uuid.UUID
    external_event_id: str
    start_at: datetime
    end_at: datetime
    status: str | None = None
    summary: str | None = None
