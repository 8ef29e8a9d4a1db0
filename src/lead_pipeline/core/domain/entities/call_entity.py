from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any

from lead_pipeline.core.domain.entities._base import EntityMixin


@dataclass(slots=True)
class CallEntity(EntityMixin):
    id: uuid.UUID
    clinic_id: uuid.UUID
    external_call_id: str
    lead_id: uuid.UUID | None
    phone: str | None
    attempt_no: int
    status: str
    started_at: datetime | None = None
    ended_at: datetime | None = None
    duration_sec: int | None = None
    outcome: str | None = None
    transcript: str | None = None
    summary: str | None = None
    extracted: dict[str, Any] = field(default_factory=dict)
    recording_url: str | None = None
    cost_eur: Decimal | None = None
