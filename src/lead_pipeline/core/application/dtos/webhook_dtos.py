"""
Payloads aceitos pelos webhooks do agente de voz / formulários de captação.
Campos desconhecidos são ignorados; aliases cobrem os nomes legados.
"""
import uuid
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


def _as_utc(value: datetime | None) -> datetime | None:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


class WebhookPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    clinic_id: uuid.UUID | None = None

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value


class CallStartedPayload(WebhookPayload):
    call_id: str = Field(min_length=1)
    lead_id: uuid.UUID | None = None
    phone: str | None = None
    attempt_no: int | None = Field(default=None, ge=1)
    started_at: datetime | None = None

    @field_validator("started_at")
    @classmethod
    def started_at_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class CallEndedPayload(WebhookPayload):
    call_id: str = Field(min_length=1)
    lead_id: uuid.UUID | None = None
    outcome: str | None = None
    duration_sec: int | None = Field(
        default=None, ge=0, validation_alias=AliasChoices("duration", "duration_sec")
    )
    ended_at: datetime | None = None
    transcript: str | None = None
    summary: str | None = None
    extracted: dict[str, Any] | None = Field(
        default=None, validation_alias=AliasChoices("extracted_fields", "extracted")
    )
    recording_url: str | None = None
    cost_eur: Decimal | None = Field(
        default=None, ge=0, validation_alias=AliasChoices("cost_eur", "cost")
    )

    @field_validator("ended_at")
    @classmethod
    def ended_at_utc(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)


class AppointmentCreatedPayload(WebhookPayload):
    """`start_at`/`end_at` seguem como texto: a validação da grade interpreta o fuso."""
    start_at: str | None = None
    end_at: str | None = None
    lead_id: uuid.UUID | None = None
    lead_name: str | None = Field(
        default=None, validation_alias=AliasChoices("lead_name", "full_name", "name")
    )
    lead_phone: str | None = Field(
        default=None, validation_alias=AliasChoices("lead_phone", "phone")
    )
    title: str | None = None
    notes: str | None = None
    created_by: str | None = None
    source_channel: str | None = None
    export_calendar: bool = Field(
        default=False, validation_alias=AliasChoices("export_calendar", "export_google")
    )


class LeadCreatedPayload(WebhookPayload):
    id: uuid.UUID | None = None
    full_name: str | None = Field(
        default=None, validation_alias=AliasChoices("full_name", "name")
    )
    phone: str | None = None
    treatment: str | None = None
    source: str | None = None
