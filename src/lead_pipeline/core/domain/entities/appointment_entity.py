from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime

from lead_pipeline.core.domain.entities._base import EntityMixin


@dataclass(slots=True)
class AppointmentEntity(EntityMixin):
    id: uuid.UUID
    clinic_id: uuid.UUID
    lead_id: uuid.UUID | None
    lead_name: str | None
    lead_phone: str | None
    title: str
    start_at: datetime
    end_at: datetime
    status: str
    source_channel: str
    created_by: str
    notes: str | None = None
    external_event_id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == "scheduled"
