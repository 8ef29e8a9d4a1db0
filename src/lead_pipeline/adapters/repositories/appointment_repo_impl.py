from datetime import datetime

import structlog
from django.db import IntegrityError, transaction

from lead_pipeline.core.application.services.availability_service import (
    CONFLICT_MESSAGES,
    SOURCE_APPOINTMENT,
)
from lead_pipeline.core.domain.entities.appointment_entity import AppointmentEntity
from lead_pipeline.core.domain.events.exceptions import SlotUnavailableError
from lead_pipeline.core.domain.repositories.appointment_repository import AppointmentRepository
from plugins.django_interface.models import Appointment as AppointmentModel

logger = structlog.get_logger(__name__)


def _slot_taken(exc: IntegrityError) -> SlotUnavailableError:
    # corrida check-then-insert: a UniqueConstraint parcial decide
    logger.warning("booking.unique_violation", error=str(exc))
    return SlotUnavailableError(CONFLICT_MESSAGES[SOURCE_APPOINTMENT], source=SOURCE_APPOINTMENT)


class AppointmentRepoImpl(AppointmentRepository):
    def find_by_id(self, clinic_id: str, appointment_id: str) -> AppointmentEntity | None:
        try:
            return AppointmentEntity.from_model(
                AppointmentModel.objects.get(id=appointment_id, clinic_id=clinic_id)
            )
        except AppointmentModel.DoesNotExist:
            return None

    def find_overlapping(
        self, clinic_id: str, start_at: datetime, end_at: datetime, exclude_id: str | None = None
    ) -> AppointmentEntity | None:
        qs = AppointmentModel.objects.filter(
            clinic_id=clinic_id,
            status=AppointmentModel.Status.SCHEDULED,
            start_at__lt=end_at,
            end_at__gt=start_at,
        )
        if exclude_id:
            qs = qs.exclude(id=exclude_id)
        obj = qs.order_by("start_at").first()
        return AppointmentEntity.from_model(obj) if obj else None

    def create(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        lead_id: str | None,
        lead_name: str | None,
        lead_phone: str | None,
        title: str,
        notes: str | None,
        start_at: datetime,
        end_at: datetime,
        source_channel: str,
        created_by: str,
    ) -> AppointmentEntity:
        try:
            with transaction.atomic():
                obj = AppointmentModel.objects.create(
                    clinic_id=clinic_id,
                    lead_id=lead_id,
                    lead_name=lead_name,
                    lead_phone=lead_phone,
                    title=title,
                    notes=notes,
                    start_at=start_at,
                    end_at=end_at,
                    source_channel=source_channel,
                    created_by=created_by,
                )
        except IntegrityError as exc:
            raise _slot_taken(exc) from exc
        return AppointmentEntity.from_model(obj)

    def reschedule(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        appointment_id: str,
        start_at: datetime,
        end_at: datetime,
        title: str | None = None,
        notes: str | None = None,
    ) -> AppointmentEntity:
        try:
            with transaction.atomic():
                obj = AppointmentModel.objects.select_for_update().get(id=appointment_id, clinic_id=clinic_id)
                obj.start_at = start_at
                obj.end_at = end_at
                if title is not None:
                    obj.title = title.strip() or obj.title
                if notes is not None:
                    obj.notes = notes
                obj.save(update_fields=["start_at", "end_at", "title", "notes", "updated_at"])
        except IntegrityError as exc:
            raise _slot_taken(exc) from exc
        return AppointmentEntity.from_model(obj)

    @transaction.atomic
    def set_status(self, clinic_id: str, appointment_id: str, status: str) -> AppointmentEntity:
        obj = AppointmentModel.objects.select_for_update().get(id=appointment_id, clinic_id=clinic_id)
        obj.status = status
        obj.save(update_fields=["status", "updated_at"])
        return AppointmentEntity.from_model(obj)

    def set_external_event_id(self, clinic_id: str, appointment_id: str, external_event_id: str) -> None:
        AppointmentModel.objects.filter(id=appointment_id, clinic_id=clinic_id).update(external_event_id=external_event_id)

    def list_range(self, clinic_id: str, start_at: datetime, end_at: datetime) -> list[AppointmentEntity]:
        qs = AppointmentModel.objects.filter(
            clinic_id=clinic_id, start_at__lt=end_at, end_at__gt=start_at
        ).order_by("start_at")
        return [AppointmentEntity.from_model(m) for m in qs]
