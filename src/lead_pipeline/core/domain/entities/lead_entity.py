from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from lead_pipeline.core.domain.entities._base import EntityMixin


@dataclass(slots=True)
class LeadEntity(EntityMixin):
    id: uuid.UUID
    clinic_id: uuid.UUID
    full_name: str
    phone: str | None
    stage_key: str
    status: str
    treatment: str | None = None
    source: str | None = None

    # --- contato --- #
    last_contact_at: datetime | None = None
    next_action_at: datetime | None = None

    # --- conversão pós-visita --- #
    converted_to_client: bool = False
    converted_value_eur: Decimal | None = None
    converted_service_name: str | None = None
    converted_at: datetime | None = None
    post_visit_outcome_reason: str | None = None

    # --- opt-out de WhatsApp --- #
    whatsapp_blocked: bool = False
    whatsapp_blocked_reason: str | None = None
    whatsapp_blocked_at: datetime | None = None
    whatsapp_blocked_by_user_id: str | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None
