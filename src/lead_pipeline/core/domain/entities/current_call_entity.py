import uuid
from dataclasses import dataclass
from datetime import datetime

from lead_pipeline.core.domain.entities._base import EntityMixin


@dataclass(slots=True)
class CurrentCallEntity(EntityMixin):
    """Estado da ligação em curso de uma clínica (painel)."""
    clinic_id: uuid.UUID
    current_call_external_id: str | None = None
    current_call_lead_id: uuid.UUID | None = None
    current_call_started_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def in_call(self) -> bool:
        return bool(self.current_call_external_id)
