from dataclasses import dataclass, field
from typing import Any

from lead_pipeline.core.application.cqrs import CommandDTO


@dataclass(frozen=True, slots=True)
class TransitionLeadStageCommand(CommandDTO):
    """Move o lead para `to_stage_key` (arrastar no quadro ou automação)."""
    clinic_id: str
    lead_id: str
    to_stage_key: str
    reason: str | None = None
    actor_type: str = "system"
    actor_id: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class RecordLeadOutcomeCommand(CommandDTO):
    """Resultado comercial pós-visita (fechado / pendente / seguimento / sem cierre)."""
    clinic_id: str
    lead_id: str
    to_stage_key: str
    actor_type: str
    actor_id: str | None
    source: str
    converted_value_eur: Any = None
    converted_service_name: str | None = None
    outcome_reason: str | None = None


@dataclass(frozen=True, slots=True)
class RegisterLeadCommand(CommandDTO):
    clinic_id: str
    full_name: str | None
    phone: str | None
    lead_id: str | None = None
    treatment: str | None = None
    source: str | None = None


@dataclass(frozen=True, slots=True)
class SetWhatsappBlockCommand(CommandDTO):
    clinic_id: str
    lead_id: str
    blocked: bool
    reason: str | None = None
    user_id: str | None = None
