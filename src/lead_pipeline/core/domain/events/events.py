from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


def _now() -> datetime:
    return datetime.now(UTC)


# ───────────────────────────────────────────────
# Event Base e Domain Events
# ───────────────────────────────────────────────
@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    event_id: uuid.UUID = field(default_factory=uuid.uuid4)
    occurred_at: datetime = field(default_factory=_now)

# ╭──────────────────────────────────────────────╮
# │ 1. Funil de leads                            │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True, kw_only=True)
class LeadStageChangedEvent(DomainEvent):
    clinic_id: uuid.UUID
    lead_id: uuid.UUID
    from_stage_key: str | None
    to_stage_key: str
    actor_type: str
    fallback: bool = False

# ╭──────────────────────────────────────────────╮
# │ 2. Agenda                                    │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True, kw_only=True)
class AppointmentBookedEvent(DomainEvent):
    """Cita criada ou remarcada; `export_to_calendar` pede espelhamento externo."""
    clinic_id: uuid.UUID
    appointment_id: uuid.UUID
    rescheduled: bool = False
    export_to_calendar: bool = True

# ╭──────────────────────────────────────────────╮
# │ 3. Ações pendentes                           │
# ╰──────────────────────────────────────────────╯
@dataclass(frozen=True, kw_only=True)
class PendingActionDueEvent(DomainEvent):
    clinic_id: uuid.UUID
    action_id: uuid.UUID
    lead_id: uuid.UUID | None
    action_type: str
    payload: dict[str, Any] = field(default_factory=dict)
