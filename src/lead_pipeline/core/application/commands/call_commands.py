from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from lead_pipeline.core.application.cqrs import CommandDTO


@dataclass(frozen=True, slots=True)
class RegisterCallStartedCommand(CommandDTO):
    clinic_id: str
    external_call_id: str
    lead_id: str | None = None
    phone: str | None = None
    attempt_no: int | None = None
    started_at: datetime | None = None


@dataclass(frozen=True, slots=True)
class RegisterCallEndedCommand(CommandDTO):
    clinic_id: str
    time_zone: str
    external_call_id: str
    lead_id: str | None = None
    outcome: str | None = None
    duration_sec: int | None = None
    ended_at: datetime | None = None
    transcript: str | None = None
    summary: str | None = None
    extracted: dict[str, Any] | None = None
    recording_url: str | None = None
    cost_eur: Decimal | None = None
