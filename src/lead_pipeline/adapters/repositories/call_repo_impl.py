from datetime import datetime
from decimal import Decimal
from typing import Any

from django.db import IntegrityError, transaction

from lead_pipeline.core.domain.entities.call_entity import CallEntity
from lead_pipeline.core.domain.events.exceptions import TenantResolutionError
from lead_pipeline.core.domain.repositories.call_repository import CallRepository
from plugins.django_interface.models import Call as CallModel

MSG_CALL_OTHER_CLINIC = "La llamada pertenece a otra clinica."


def _owned_or_none(obj: CallModel | None, clinic_id: str) -> CallModel | None:
    # `external_call_id` é único global: linha de outra clínica nunca é tocada
    if obj is not None and str(obj.clinic_id) != str(clinic_id):
        raise TenantResolutionError(MSG_CALL_OTHER_CLINIC)
    return obj


class CallRepoImpl(CallRepository):
    def find_by_external_id(self, clinic_id: str, external_call_id: str) -> CallEntity | None:
        obj = CallModel.objects.filter(clinic_id=clinic_id, external_call_id=external_call_id).first()
        return CallEntity.from_model(obj) if obj else None

    def count_for_lead(self, clinic_id: str, lead_id: str, exclude_external_id: str | None = None) -> int:
        qs = CallModel.objects.filter(clinic_id=clinic_id, lead_id=lead_id)
        if exclude_external_id:
            qs = qs.exclude(external_call_id=exclude_external_id)
        return qs.count()

    @transaction.atomic
    def upsert_started(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        external_call_id: str,
        lead_id: str | None,
        phone: str | None,
        attempt_no: int,
        started_at: datetime,
    ) -> tuple[CallEntity, bool]:
        """
        Idempotente por `external_call_id`: um início repetido só completa
        lead/telefone ausentes, sem reabrir uma ligação já encerrada.
        """
        defaults = dict(
            lead_id=lead_id,
            phone=phone,
            attempt_no=attempt_no,
            started_at=started_at,
            status=CallModel.Status.IN_PROGRESS,
        )
        _owned_or_none(
            CallModel.objects.select_for_update().filter(external_call_id=external_call_id).first(), clinic_id
        )
        try:
            with transaction.atomic():
                obj, created = CallModel.objects.get_or_create(
                    clinic_id=clinic_id, external_call_id=external_call_id, defaults=defaults
                )
        except IntegrityError:
            # outra entrega criou a linha entre a leitura e o insert
            obj = _owned_or_none(CallModel.objects.get(external_call_id=external_call_id), clinic_id)
            created = False

        if not created:
            changed = []
            if lead_id and not obj.lead_id:
                obj.lead_id = lead_id
                changed.append("lead")
            if phone and not obj.phone:
                obj.phone = phone
                changed.append("phone")
            if not obj.started_at:
                obj.started_at = started_at
                changed.append("started_at")
            if changed:
                obj.save(update_fields=changed)
        return CallEntity.from_model(obj), created

    @transaction.atomic
    def finalize(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        external_call_id: str,
        lead_id: str | None,
        attempt_no: int,
        ended_at: datetime,
        duration_sec: int | None,
        outcome: str | None,
        transcript: str | None,
        summary: str | None,
        extracted: dict[str, Any] | None,
        recording_url: str | None,
        cost_eur: Decimal | None,
    ) -> CallEntity:
        obj = _owned_or_none(
            CallModel.objects.select_for_update().filter(external_call_id=external_call_id).first(), clinic_id
        )
        if obj is None:
            obj = CallModel(
                clinic_id=clinic_id,
                external_call_id=external_call_id,
                attempt_no=attempt_no,
            )

        def keep(new, old):
            return new if new is not None else old

        obj.lead_id = keep(lead_id, obj.lead_id)
        obj.status = CallModel.Status.ENDED
        obj.ended_at = keep(obj.ended_at, ended_at)
        obj.duration_sec = keep(duration_sec, obj.duration_sec)
        obj.outcome = keep(outcome, obj.outcome)
        obj.transcript = keep(transcript, obj.transcript)
        obj.summary = keep(summary, obj.summary)
        obj.extracted = keep(extracted, obj.extracted)
        obj.recording_url = keep(recording_url, obj.recording_url)
        obj.cost_eur = keep(cost_eur, obj.cost_eur)
        obj.save()
        return CallEntity.from_model(obj)
