from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from lead_pipeline.core.domain.entities._base import EntityMixin


@dataclass(slots=True, frozen=True)
class LeadStageEntity(EntityMixin):
    """Linha do catálogo de etapas (dado de referência, somente leitura)."""
    stage_key: str
    pipeline_key: str
    pipeline_label: str
    label: str
    description: str
    pipeline_order: int
    order_index: int
    is_terminal: bool = False
    is_active: bool = True


@dataclass(slots=True)
class LeadStageHistoryEntity(EntityMixin):
    """Registro imutável de uma transição de etapa."""
    id: uuid.UUID
    clinic_id: uuid.UUID
    lead_id: uuid.UUID
    from_stage_key: str | None
    to_stage_key: str
    reason: str | None
    actor_type: str
    actor_id: str | None
    meta: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
