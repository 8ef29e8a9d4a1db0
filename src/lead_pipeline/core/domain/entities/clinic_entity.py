import uuid
from dataclasses import dataclass

from lead_pipeline.core.domain.entities._base import EntityMixin


@dataclass(slots=True)
class ClinicEntity(EntityMixin):
    id: uuid.UUID
    name: str
    time_zone: str
