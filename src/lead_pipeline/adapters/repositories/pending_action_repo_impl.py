from datetime import datetime
from typing import Any

from django.db import IntegrityError, transaction
from django.utils import timezone

from lead_pipeline.core.application.cqrs import PagedResult
from lead_pipeline.core.domain.entities.pending_action_entity import PendingActionEntity
from lead_pipeline.core.domain.repositories.pending_action_repository import PendingActionRepository
from plugins.django_interface.models import PendingAction as PendingActionModel


class PendingActionRepoImpl(PendingActionRepository):
    """Implementação Django do PendingActionRepository."""

    # ────────────────────────────────── #
    # Agendamento idempotente
    # ────────────────────────────────── #
    def schedule(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        lead_id: str | None,
        action_type: str,
        due_at: datetime,
        idempotency_key: str,
        payload: dict[str, Any] | None = None,
    ) -> tuple[PendingActionEntity, bool]:
        """
        A unicidade é garantida pelo UniqueConstraint `(clinic, idempotency_key)`:
        uma segunda entrega devolve a ação existente, sem alterar o vencimento.
        """
        defaults = dict(
            lead_id=lead_id,
            action_type=action_type,
            due_at=due_at,
            payload=payload or {},
        )
        try:
            with transaction.atomic():
                obj, created = PendingActionModel.objects.get_or_create(
                    clinic_id=clinic_id, idempotency_key=idempotency_key, defaults=defaults
                )
        except IntegrityError:
            obj = PendingActionModel.objects.get(clinic_id=clinic_id, idempotency_key=idempotency_key)
            created = False
        return PendingActionEntity.from_model(obj), created

    # ────────────────────────────────── #
    # Transições de status
    # ────────────────────────────────── #
    def mark_dispatched(self, clinic_id: str, action_id: str) -> bool:
        updated = PendingActionModel.objects.filter(
            id=action_id, clinic_id=clinic_id, status=PendingActionModel.Status.PENDING
        ).update(status=PendingActionModel.Status.DISPATCHED, dispatched_at=timezone.now())
        return updated == 1

    @transaction.atomic
    def mark_done(self, clinic_id: str, action_id: str) -> PendingActionEntity | None:
        obj = PendingActionModel.objects.select_for_update().filter(id=action_id, clinic_id=clinic_id).first()
        if obj is None:
            return None
        # idempotência: já finalizada, nada muda
        if obj.status in (PendingActionModel.Status.DONE, PendingActionModel.Status.CANCELLED):
            return PendingActionEntity.from_model(obj)
        obj.status = PendingActionModel.Status.DONE
        obj.completed_at = timezone.now()
        obj.save(update_fields=["status", "completed_at"])
        return PendingActionEntity.from_model(obj)

    def cancel_for_lead(self, clinic_id: str, lead_id: str, action_type: str | None = None) -> int:
        qs = PendingActionModel.objects.filter(
            clinic_id=clinic_id, lead_id=lead_id, status=PendingActionModel.Status.PENDING
        )
        if action_type:
            qs = qs.filter(action_type=action_type)
        return qs.update(status=PendingActionModel.Status.CANCELLED, completed_at=timezone.now())

    # ────────────────────────────────── #
    # Consultas
    # ────────────────────────────────── #
    def list_due(self, clinic_id: str, before: datetime) -> list[PendingActionEntity]:
        qs = PendingActionModel.objects.filter(
            clinic_id=clinic_id,
            status=PendingActionModel.Status.PENDING,
            due_at__lte=before,
        ).order_by("due_at")
        return [PendingActionEntity.from_model(obj) for obj in qs]

    def list(self, filtros: dict[str, Any], page: int, page_size: int) -> PagedResult[PendingActionEntity]:
        qs = PendingActionModel.objects.all()
        if filtros:
            qs = qs.filter(**filtros)

        total = qs.count()
        offset = (page - 1) * page_size
        items = [PendingActionEntity.from_model(o) for o in qs.order_by("due_at")[offset: offset + page_size]]
        return PagedResult(items=items, total=total, page=page, page_size=page_size)
