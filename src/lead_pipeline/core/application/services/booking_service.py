"""
Fluxo de criação/remarcação de citas:
validação da grade → lead (upsert por telefone) → disponibilidade → gravação
→ etapa `visit_scheduled` → evento para espelhamento no calendário externo.
"""
from __future__ import annotations

import structlog

from lead_pipeline.adapters.observability.metrics import BOOKING_ATTEMPTS
from lead_pipeline.core.application.services.availability_service import AvailabilityService
from lead_pipeline.core.application.services.lead_service import LeadService
from lead_pipeline.core.application.services.lead_stage_engine import ACTOR_STAFF, LeadStageEngine
from lead_pipeline.core.application.services.slot_rules import validate_slot_range
from lead_pipeline.core.domain import lead_stages as ls
from lead_pipeline.core.domain.entities.appointment_entity import AppointmentEntity
from lead_pipeline.core.domain.events.events import AppointmentBookedEvent
from lead_pipeline.core.domain.events.exceptions import (
    AppointmentNotFoundError,
    BusinessValidationError,
    LeadNotFoundError,
    SlotUnavailableError,
    SlotValidationError,
)
from lead_pipeline.core.domain.repositories.appointment_repository import AppointmentRepository
from lead_pipeline.core.domain.repositories.lead_repository import LeadRepository
from lead_pipeline.core.domain.services.event_dispatcher import EventDispatcher

logger = structlog.get_logger(__name__)

STATUS_SCHEDULED = "scheduled"
STATUS_CANCELED = "canceled"

DEFAULT_TITLE = "Cita"
SOURCE_CHANNELS = ("call_ai", "whatsapp_ai", "staff")
CREATED_BY_VALUES = ("agent", "staff")

MSG_LEAD_REQUIRED = "lead_name y lead_phone son obligatorios para crear cita."
MSG_APPOINTMENT_NOT_FOUND = "Cita no encontrada."
MSG_NOT_SCHEDULED = "Solo se pueden mover citas programadas."
MSG_INVALID_CHANNEL = "source_channel o created_by no valido."


class BookingService:
    def __init__(  # noqa: PLR0913
        self,
        appointment_repo: AppointmentRepository,
        lead_repo: LeadRepository,
        lead_service: LeadService,
        availability: AvailabilityService,
        engine: LeadStageEngine,
        dispatcher: EventDispatcher,
    ):
        self.appointment_repo = appointment_repo
        self.lead_repo = lead_repo
        self.availability = availability
        self.engine = engine
        self.lead_service = lead_service
        self.dispatcher = dispatcher

    # ------------------------------------------------------------------ #
    def create_appointment(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        time_zone: str,
        start_at,
        end_at=None,
        lead_id: str | None = None,
        lead_name: str | None = None,
        lead_phone: str | None = None,
        title: str | None = None,
        notes: str | None = None,
        source_channel: str = "staff",
        created_by: str = "staff",
        actor_type: str = ACTOR_STAFF,
        actor_id: str | None = None,
        export_to_calendar: bool = True,
    ) -> AppointmentEntity:
        lead_name = (lead_name or "").strip() or None
        phone = self.lead_service.normalize_phone(lead_phone) if lead_phone else None
        if not lead_id and not (lead_name and phone):
            raise BusinessValidationError(MSG_LEAD_REQUIRED)
        if source_channel not in SOURCE_CHANNELS or created_by not in CREATED_BY_VALUES:
            raise BusinessValidationError(MSG_INVALID_CHANNEL)

        slot = self._validate("create", start_at, end_at, time_zone)

        if lead_id:
            lead = self.lead_repo.find_by_id(clinic_id, lead_id)
            if lead is None:
                raise LeadNotFoundError("Lead no encontrado.")
        else:
            lead, _ = self.lead_service.register_lead(
                clinic_id=clinic_id, full_name=lead_name, phone=phone, source=source_channel
            )

        try:
            self.availability.ensure_available(clinic_id, slot.start_at, slot.end_at)
            appt = self.appointment_repo.create(
                clinic_id=clinic_id,
                lead_id=str(lead.id),
                lead_name=lead_name or lead.full_name,
                lead_phone=phone or lead.phone,
                title=(title or "").strip() or DEFAULT_TITLE,
                notes=notes,
                start_at=slot.start_at,
                end_at=slot.end_at,
                source_channel=source_channel,
                created_by=created_by,
            )
        except SlotUnavailableError:
            BOOKING_ATTEMPTS.labels("create", "conflict").inc()
            raise

        BOOKING_ATTEMPTS.labels("create", "ok").inc()
        logger.info("booking.created", clinic_id=str(clinic_id), appointment_id=str(appt.id), start_at=slot.start_iso)

        self.engine.transition(
            clinic_id=clinic_id,
            lead_id=str(lead.id),
            to_stage_key=ls.VISIT_SCHEDULED,
            reason="Cita agendada",
            actor_type=actor_type,
            actor_id=actor_id,
            meta={"appointment_id": str(appt.id), "source_channel": source_channel},
        )
        self.dispatcher.dispatch(
            AppointmentBookedEvent(
                clinic_id=clinic_id, appointment_id=appt.id, export_to_calendar=export_to_calendar
            )
        )
        return appt

    def reschedule_appointment(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        time_zone: str,
        appointment_id: str,
        start_at,
        end_at=None,
        title: str | None = None,
        notes: str | None = None,
        actor_type: str = ACTOR_STAFF,
        actor_id: str | None = None,
    ) -> AppointmentEntity:
        current = self.appointment_repo.find_by_id(clinic_id, appointment_id)
        if current is None:
            raise AppointmentNotFoundError(MSG_APPOINTMENT_NOT_FOUND)
        if not current.is_active:
            raise BusinessValidationError(MSG_NOT_SCHEDULED)

        slot = self._validate("reschedule", start_at, end_at, time_zone)
        try:
            self.availability.ensure_available(
                clinic_id, slot.start_at, slot.end_at, exclude_appointment_id=str(appointment_id)
            )
            appt = self.appointment_repo.reschedule(
                clinic_id=clinic_id,
                appointment_id=appointment_id,
                start_at=slot.start_at,
                end_at=slot.end_at,
                title=title,
                notes=notes,
            )
        except SlotUnavailableError:
            BOOKING_ATTEMPTS.labels("reschedule", "conflict").inc()
            raise

        BOOKING_ATTEMPTS.labels("reschedule", "ok").inc()
        logger.info("booking.rescheduled", appointment_id=str(appointment_id), start_at=slot.start_iso)

        if appt.lead_id:
            self.engine.transition(
                clinic_id=clinic_id,
                lead_id=str(appt.lead_id),
                to_stage_key=ls.VISIT_SCHEDULED,
                reason="Cita reprogramada",
                actor_type=actor_type,
                actor_id=actor_id,
                meta={"appointment_id": str(appt.id), "source_channel": appt.source_channel},
            )
        self.dispatcher.dispatch(
            AppointmentBookedEvent(clinic_id=clinic_id, appointment_id=appt.id, rescheduled=True)
        )
        return appt

    def cancel_appointment(self, *, clinic_id: str, appointment_id: str) -> AppointmentEntity:
        current = self.appointment_repo.find_by_id(clinic_id, appointment_id)
        if current is None:
            raise AppointmentNotFoundError(MSG_APPOINTMENT_NOT_FOUND)
        if not current.is_active:
            return current
        appt = self.appointment_repo.set_status(clinic_id, appointment_id, STATUS_CANCELED)
        logger.info("booking.canceled", appointment_id=str(appointment_id))
        return appt

    # ------------------------------------------------------------------ #
    @staticmethod
    def _validate(operation: str, start_at, end_at, time_zone: str):
        try:
            return validate_slot_range(start_at, end_at, time_zone)
        except SlotValidationError:
            BOOKING_ATTEMPTS.labels(operation, "invalid").inc()
            raise
