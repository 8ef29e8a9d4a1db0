from dataclasses import dataclass
from datetime import datetime

from lead_pipeline.core.application.cqrs import CommandDTO


@dataclass(frozen=True, slots=True)
class DispatchDuePendingActionsCommand(CommandDTO):
    """Publica as ações vencidas da clínica e as marca como `dispatched`."""
    clinic_id: str
    now: datetime


@dataclass(frozen=True, slots=True)
class MarkPendingActionDoneCommand(CommandDTO):
    clinic_id: str
    action_id: str
