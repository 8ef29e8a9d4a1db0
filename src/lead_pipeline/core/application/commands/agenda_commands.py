from dataclasses import dataclass
from datetime import datetime

from lead_pipeline.core.application.cqrs import CommandDTO

# ───────────────────────────────  Citas  ────────────────────────────────
@dataclass(frozen=True, slots=True)
class CreateAppointmentCommand(CommandDTO):
    clinic_id: str
    time_zone: str
    start_at: datetime | str | None
    end_at: datetime | str | None = None
    lead_id: str | None = None
    lead_name: str | None = None
    lead_phone: str | None = None
    title: str | None = None
    notes: str | None = None
    source_channel: str = "staff"
    created_by: str = "staff"
    actor_type: str = "staff"
    actor_id: str | None = None
    export_to_calendar: bool = True


@dataclass(frozen=True, slots=True)
class RescheduleAppointmentCommand(CommandDTO):
    clinic_id: str
    time_zone: str
    appointment_id: str
    start_at: datetime | str | None
    end_at: datetime | str | None = None
    title: str | None = None
    notes: str | None = None
    actor_type: str = "staff"
    actor_id: str | None = None


@dataclass(frozen=True, slots=True)
class CancelAppointmentCommand(CommandDTO):
    clinic_id: str
    appointment_id: str

# ─────────────────────────────  Bloqueios  ──────────────────────────────
@dataclass(frozen=True, slots=True)
class CreateBusyBlockCommand(CommandDTO):
    clinic_id: str
    time_zone: str
    start_at: datetime | str | None
    end_at: datetime | str | None
    reason: str | None = None
    user_id: str | None = None


@dataclass(frozen=True, slots=True)
class MoveBusyBlockCommand(CommandDTO):
    clinic_id: str
    time_zone: str
    block_id: str
    start_at: datetime | str | None
    end_at: datetime | str | None
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class DeleteBusyBlockCommand(CommandDTO):
    clinic_id: str
    block_id: str
