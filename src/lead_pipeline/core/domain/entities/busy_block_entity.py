import uuid
from dataclasses import dataclass
from datetime import datetime

from lead_pipeline.core.domain.entities._base import EntityMixin


@dataclass(slots=True)
class BusyBlockEntity(EntityMixin):
    id: uuid.UUID
    clinic_id: uuid.UUID
    start_at: datetime
    end_at: datetime
    reason: str | None = None
    created_by_user_id: str | None = None
