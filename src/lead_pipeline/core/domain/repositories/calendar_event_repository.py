from abc import ABC, abstractmethod
from datetime import datetime

from lead_pipeline.core.domain.entities.calendar_event_entity import CalendarEventEntity

CANCELLED_STATUS = "cancelled"


class CalendarEventRepository(ABC):
    """Cache do calendário externo; o core apenas lê."""

    @abstractmethod
    def find_busy_overlapping(
        self, clinic_id: str, start_at: datetime, end_at: datetime
    ) -> CalendarEventEntity | None:
        """Primeiro evento não cancelado que cruza `[start_at, end_at)`."""
        ...
