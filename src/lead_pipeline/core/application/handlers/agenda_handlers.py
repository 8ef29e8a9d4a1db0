from typing import Any

from lead_pipeline.core.application.commands.agenda_commands import (
    CancelAppointmentCommand,
    CreateAppointmentCommand,
    CreateBusyBlockCommand,
    DeleteBusyBlockCommand,
    MoveBusyBlockCommand,
    RescheduleAppointmentCommand,
)
from lead_pipeline.core.application.cqrs import CommandHandler, QueryHandler
from lead_pipeline.core.application.queries.agenda_queries import (
    CheckSlotAvailabilityQuery,
    ListAppointmentsQuery,
    ListBusyBlocksQuery,
)
from lead_pipeline.core.application.services.availability_service import AvailabilityService
from lead_pipeline.core.application.services.booking_service import BookingService
from lead_pipeline.core.application.services.busy_block_service import BusyBlockService
from lead_pipeline.core.application.services.slot_rules import (
    validate_busy_block_range,
    validate_slot_range,
)
from lead_pipeline.core.domain.entities.appointment_entity import AppointmentEntity
from lead_pipeline.core.domain.entities.busy_block_entity import BusyBlockEntity
from lead_pipeline.core.domain.repositories.appointment_repository import AppointmentRepository
from lead_pipeline.core.domain.repositories.busy_block_repository import BusyBlockRepository

KIND_BUSY_BLOCK = "busy_block"


# ╭──────────────────────────────────────────────╮
# │ 1. Citas                                     │
# ╰──────────────────────────────────────────────╯
class CreateAppointmentHandler(CommandHandler[CreateAppointmentCommand]):
    def __init__(self, booking_service: BookingService):
        self.booking_service = booking_service

    def handle(self, cmd: CreateAppointmentCommand) -> AppointmentEntity:
        return self.booking_service.create_appointment(
            clinic_id=cmd.clinic_id,
            time_zone=cmd.time_zone,
            start_at=cmd.start_at,
            end_at=cmd.end_at,
            lead_id=cmd.lead_id,
            lead_name=cmd.lead_name,
            lead_phone=cmd.lead_phone,
            title=cmd.title,
            notes=cmd.notes,
            source_channel=cmd.source_channel,
            created_by=cmd.created_by,
            actor_type=cmd.actor_type,
            actor_id=cmd.actor_id,
            export_to_calendar=cmd.export_to_calendar,
        )


class RescheduleAppointmentHandler(CommandHandler[RescheduleAppointmentCommand]):
    def __init__(self, booking_service: BookingService):
        self.booking_service = booking_service

    def handle(self, cmd: RescheduleAppointmentCommand) -> AppointmentEntity:
        return self.booking_service.reschedule_appointment(
            clinic_id=cmd.clinic_id,
            time_zone=cmd.time_zone,
            appointment_id=cmd.appointment_id,
            start_at=cmd.start_at,
            end_at=cmd.end_at,
            title=cmd.title,
            notes=cmd.notes,
            actor_type=cmd.actor_type,
            actor_id=cmd.actor_id,
        )


class CancelAppointmentHandler(CommandHandler[CancelAppointmentCommand]):
    def __init__(self, booking_service: BookingService):
        self.booking_service = booking_service

    def handle(self, cmd: CancelAppointmentCommand) -> AppointmentEntity:
        return self.booking_service.cancel_appointment(
            clinic_id=cmd.clinic_id, appointment_id=cmd.appointment_id
        )


# ╭──────────────────────────────────────────────╮
# │ 2. Bloqueios internos                        │
# ╰──────────────────────────────────────────────╯
class CreateBusyBlockHandler(CommandHandler[CreateBusyBlockCommand]):
    def __init__(self, busy_block_service: BusyBlockService):
        self.busy_block_service = busy_block_service

    def handle(self, cmd: CreateBusyBlockCommand) -> BusyBlockEntity:
        return self.busy_block_service.create(
            clinic_id=cmd.clinic_id,
            time_zone=cmd.time_zone,
            start_at=cmd.start_at,
            end_at=cmd.end_at,
            reason=cmd.reason,
            created_by_user_id=cmd.user_id,
        )


class MoveBusyBlockHandler(CommandHandler[MoveBusyBlockCommand]):
    def __init__(self, busy_block_service: BusyBlockService):
        self.busy_block_service = busy_block_service

    def handle(self, cmd: MoveBusyBlockCommand) -> BusyBlockEntity:
        return self.busy_block_service.move(
            clinic_id=cmd.clinic_id,
            time_zone=cmd.time_zone,
            block_id=cmd.block_id,
            start_at=cmd.start_at,
            end_at=cmd.end_at,
            reason=cmd.reason,
        )


class DeleteBusyBlockHandler(CommandHandler[DeleteBusyBlockCommand]):
    def __init__(self, busy_block_service: BusyBlockService):
        self.busy_block_service = busy_block_service

    def handle(self, cmd: DeleteBusyBlockCommand) -> None:
        self.busy_block_service.delete(clinic_id=cmd.clinic_id, block_id=cmd.block_id)


# ╭──────────────────────────────────────────────╮
# │ 3. Consultas                                 │
# ╰──────────────────────────────────────────────╯
class CheckSlotAvailabilityHandler(QueryHandler[CheckSlotAvailabilityQuery, dict[str, Any]]):
    """
    Valida o intervalo pelas regras do tipo pedido e devolve a disponibilidade.
    Intervalo inválido levanta SlotValidationError (o chamador responde 400).
    """

    def __init__(self, availability: AvailabilityService):
        self.availability = availability

    def handle(self, q: CheckSlotAvailabilityQuery) -> dict[str, Any]:
        if q.kind == KIND_BUSY_BLOCK:
            slot = validate_busy_block_range(q.start_at, q.end_at, q.time_zone)
        else:
            slot = validate_slot_range(q.start_at, q.end_at, q.time_zone)

        result = self.availability.check(
            q.clinic_id,
            slot.start_at,
            slot.end_at,
            exclude_appointment_id=q.exclude_appointment_id,
            exclude_busy_block_id=q.exclude_busy_block_id,
        )
        return {
            "start_at": slot.start_iso,
            "end_at": slot.end_iso,
            "available": result.available,
            "conflict_source": result.conflict_source,
            "error": result.error,
        }


class ListAppointmentsHandler(QueryHandler[ListAppointmentsQuery, list[AppointmentEntity]]):
    def __init__(self, appointment_repo: AppointmentRepository):
        self.appointment_repo = appointment_repo

    def handle(self, q: ListAppointmentsQuery) -> list[AppointmentEntity]:
        return self.appointment_repo.list_range(q.clinic_id, q.start_at, q.end_at)


class ListBusyBlocksHandler(QueryHandler[ListBusyBlocksQuery, list[BusyBlockEntity]]):
    def __init__(self, busy_block_repo: BusyBlockRepository):
        self.busy_block_repo = busy_block_repo

    def handle(self, q: ListBusyBlocksQuery) -> list[BusyBlockEntity]:
        return self.busy_block_repo.list_range(q.clinic_id, q.start_at, q.end_at)
