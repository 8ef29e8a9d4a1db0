from datetime import datetime

from lead_pipeline.core.domain.entities.calendar_event_entity import CalendarEventEntity
from lead_pipeline.core.domain.repositories.calendar_event_repository import (
    CANCELLED_STATUS,
    CalendarEventRepository,
)
from plugins.django_interface.models import CalendarEvent as CalendarEventModel


class CalendarEventRepoImpl(CalendarEventRepository):
    def find_busy_overlapping(
        self, clinic_id: str, start_at: datetime, end_at: datetime
    ) -> CalendarEventEntity | None:
        # status nulo conta como confirmado; o exclude do Django mantém os nulos
        obj = (
            CalendarEventModel.objects.filter(clinic_id=clinic_id, start_at__lt=end_at, end_at__gt=start_at)
            .exclude(status__iexact=CANCELLED_STATUS)
            .order_by("start_at")
            .first()
        )
        return CalendarEventEntity.from_model(obj) if obj else None
