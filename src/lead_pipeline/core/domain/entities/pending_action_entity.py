from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from lead_pipeline.core.domain.entities._base import EntityMixin


@dataclass(slots=True)
class PendingActionEntity(EntityMixin):
    id: uuid.UUID
    clinic_id: uuid.UUID
    lead_id: uuid.UUID | None
    action_type: str
    due_at: datetime
    idempotency_key: str
    status: str = "pending"
    payload: dict[str, Any] = field(default_factory=dict)
    dispatched_at: datetime | None = None
    completed_at: datetime | None = None
