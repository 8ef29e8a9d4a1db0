# ╭────────────────────────────────────────────────────────────────────────────╮
# │  Agenda – citas, bloqueios internos e disponibilidade                      │
# │                                                                            │
# │  Horários chegam como texto ISO-8601; sem offset = hora local da clínica.  │
# │  Conflitos → 409 com `conflict_source`; grade inválida → 400.              │
# ╰────────────────────────────────────────────────────────────────────────────╯
from __future__ import annotations

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from lead_pipeline.adapters.config.composition_root import container
from lead_pipeline.core.application.commands.agenda_commands import (
    CancelAppointmentCommand,
    CreateAppointmentCommand,
    CreateBusyBlockCommand,
    DeleteBusyBlockCommand,
    MoveBusyBlockCommand,
    RescheduleAppointmentCommand,
)
from lead_pipeline.core.application.queries.agenda_queries import (
    CheckSlotAvailabilityQuery,
    ListAppointmentsQuery,
    ListBusyBlocksQuery,
)
from lead_pipeline.core.application.services.lead_stage_engine import ACTOR_STAFF
from plugins.django_interface.serializers.core_serializers import (
    AppointmentSerializer,
    BusyBlockSerializer,
)
from plugins.django_interface.serializers.input_serializers import (
    AppointmentInputSerializer,
    BusyBlockInputSerializer,
    RangeQuerySerializer,
    RescheduleInputSerializer,
)

from .base_views import ClinicScopedMixin


def _range(request) -> tuple:
    params = RangeQuerySerializer(data=request.query_params)
    params.is_valid(raise_exception=True)
    return params.validated_data["start_at"], params.validated_data["end_at"]


def _opt_str(value) -> str | None:
    return str(value) if value else None


class AppointmentViewSet(ClinicScopedMixin, viewsets.ViewSet):
    def list(self, request):
        """GET /api/appointments?start_at=&end_at= – todas as citas do intervalo (qualquer status)."""
        start_at, end_at = _range(request)
        items = container.query_bus().dispatch(
            ListAppointmentsQuery(clinic_id=self.tenant(request).clinic_id, start_at=start_at, end_at=end_at)
        )
        return Response({"results": AppointmentSerializer(items, many=True).data})

    def create(self, request):
        body = AppointmentInputSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        data = body.validated_data
        tenant = self.tenant(request)
        appt = container.command_bus().dispatch(
            CreateAppointmentCommand(
                clinic_id=tenant.clinic_id,
                time_zone=tenant.time_zone,
                start_at=data.get("start_at"),
                end_at=data.get("end_at"),
                lead_id=_opt_str(data.get("lead_id")),
                lead_name=data.get("lead_name"),
                lead_phone=data.get("lead_phone"),
                title=data.get("title"),
                notes=data.get("notes"),
                actor_type=ACTOR_STAFF,
                actor_id=self.actor_id(request),
            )
        )
        return Response(AppointmentSerializer(appt).data, status=status.HTTP_201_CREATED)

    @action(methods=["post"], detail=True)
    def reschedule(self, request, pk=None):
        body = RescheduleInputSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        data = body.validated_data
        tenant = self.tenant(request)
        appt = container.command_bus().dispatch(
            RescheduleAppointmentCommand(
                clinic_id=tenant.clinic_id,
                time_zone=tenant.time_zone,
                appointment_id=str(pk),
                start_at=data.get("start_at"),
                end_at=data.get("end_at"),
                title=data.get("title"),
                notes=data.get("notes"),
                actor_type=ACTOR_STAFF,
                actor_id=self.actor_id(request),
            )
        )
        return Response(AppointmentSerializer(appt).data)

    @action(methods=["post"], detail=True)
    def cancel(self, request, pk=None):
        appt = container.command_bus().dispatch(
            CancelAppointmentCommand(clinic_id=self.tenant(request).clinic_id, appointment_id=str(pk))
        )
        return Response(AppointmentSerializer(appt).data)


class BusyBlockViewSet(ClinicScopedMixin, viewsets.ViewSet):
    def list(self, request):
        start_at, end_at = _range(request)
        items = container.query_bus().dispatch(
            ListBusyBlocksQuery(clinic_id=self.tenant(request).clinic_id, start_at=start_at, end_at=end_at)
        )
        return Response({"results": BusyBlockSerializer(items, many=True).data})

    def create(self, request):
        body = BusyBlockInputSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        tenant = self.tenant(request)
        block = container.command_bus().dispatch(
            CreateBusyBlockCommand(
                clinic_id=tenant.clinic_id,
                time_zone=tenant.time_zone,
                start_at=body.validated_data.get("start_at"),
                end_at=body.validated_data.get("end_at"),
                reason=body.validated_data.get("reason"),
                user_id=self.actor_id(request),
            )
        )
        return Response(BusyBlockSerializer(block).data, status=status.HTTP_201_CREATED)

    def partial_update(self, request, pk=None):
        body = BusyBlockInputSerializer(data=request.data)
        body.is_valid(raise_exception=True)
        tenant = self.tenant(request)
        block = container.command_bus().dispatch(
            MoveBusyBlockCommand(
                clinic_id=tenant.clinic_id,
                time_zone=tenant.time_zone,
                block_id=str(pk),
                start_at=body.validated_data.get("start_at"),
                end_at=body.validated_data.get("end_at"),
                reason=body.validated_data.get("reason"),
            )
        )
        return Response(BusyBlockSerializer(block).data)

    def destroy(self, request, pk=None):
        container.command_bus().dispatch(
            DeleteBusyBlockCommand(clinic_id=self.tenant(request).clinic_id, block_id=str(pk))
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


class AvailabilityView(ClinicScopedMixin, APIView):
    """
    GET /api/availability?start_at=&end_at=[&kind=busy_block][&exclude_appointment_id=][&exclude_busy_block_id=]

    Intervalo fora da grade → 400; ocupado → 200 com `available: false`.
    """

    def get(self, request):
        tenant = self.tenant(request)
        qp = request.query_params
        result = container.query_bus().dispatch(
            CheckSlotAvailabilityQuery(
                clinic_id=tenant.clinic_id,
                time_zone=tenant.time_zone,
                start_at=qp.get("start_at"),
                end_at=qp.get("end_at") or None,
                exclude_appointment_id=qp.get("exclude_appointment_id") or None,
                exclude_busy_block_id=qp.get("exclude_busy_block_id") or None,
                kind=qp.get("kind") or "appointment",
            )
        )
        return Response(result)
