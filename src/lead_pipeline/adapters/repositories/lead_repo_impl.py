from datetime import datetime
from decimal import Decimal
from typing import Any

from django.db import IntegrityError, transaction
from django.db.models import Q

from lead_pipeline.core.application.cqrs import PagedResult
from lead_pipeline.core.domain.entities.lead_entity import LeadEntity
from lead_pipeline.core.domain.repositories.lead_repository import LeadRepository
from plugins.django_interface.models import Lead as LeadModel


class LeadRepoImpl(LeadRepository):
    """Implementação Django do LeadRepository."""

    # ────────────────────────────────── #
    # Consultas
    # ────────────────────────────────── #
    def find_by_id(self, clinic_id: str, lead_id: str) -> LeadEntity | None:
        try:
            return LeadEntity.from_model(LeadModel.objects.get(id=lead_id, clinic_id=clinic_id))
        except LeadModel.DoesNotExist:
            return None

    def find_by_phone(self, clinic_id: str, phone: str) -> LeadEntity | None:
        obj = LeadModel.objects.filter(clinic_id=clinic_id, phone=phone).first()
        return LeadEntity.from_model(obj) if obj else None

    def list(self, filtros: dict[str, Any], page: int, page_size: int) -> PagedResult[LeadEntity]:
        """
        Exemplo de `filtros`:
        ```
        {"clinic_id": "…", "stage_key": "visit_scheduled", "search": "ana"}
        ```
        `search` procura em nome e telefone.
        """
        filtros = dict(filtros or {})
        search = filtros.pop("search", None)
        qs = LeadModel.objects.filter(**filtros)
        if search:
            qs = qs.filter(Q(full_name__icontains=search) | Q(phone__icontains=search))

        total = qs.count()
        offset = (page - 1) * page_size
        items = [LeadEntity.from_model(m) for m in qs.order_by("-created_at")[offset: offset + page_size]]
        return PagedResult(items=items, total=total, page=page, page_size=page_size)

    # ────────────────────────────────── #
    # Identidade (upsert)
    # ────────────────────────────────── #
    @transaction.atomic
    def upsert(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        full_name: str,
        phone: str | None,
        lead_id: str | None = None,
        treatment: str | None = None,
        source: str | None = None,
    ) -> tuple[LeadEntity, bool]:
        obj = self._locate(clinic_id, lead_id, phone)
        if obj is not None:
            obj.full_name = full_name
            if phone:
                obj.phone = phone
            if treatment:
                obj.treatment = treatment
            # etapa/status de um lead existente nunca mudam aqui
            obj.save(update_fields=["full_name", "phone", "treatment", "updated_at"])
            return LeadEntity.from_model(obj), False

        fields = dict(clinic_id=clinic_id, full_name=full_name, phone=phone, treatment=treatment)
        if source:
            fields["source"] = source
        if lead_id:
            fields["id"] = lead_id
        try:
            with transaction.atomic():
                obj = LeadModel.objects.create(**fields)
        except IntegrityError:
            # entrega concorrente do mesmo lead: a outra ganhou
            obj = self._locate(clinic_id, lead_id, phone)
            if obj is None:
                raise
            return LeadEntity.from_model(obj), False
        return LeadEntity.from_model(obj), True

    @staticmethod
    def _locate(clinic_id: str, lead_id: str | None, phone: str | None) -> LeadModel | None:
        qs = LeadModel.objects.select_for_update().filter(clinic_id=clinic_id)
        if lead_id:
            obj = qs.filter(id=lead_id).first()
            if obj is not None:
                return obj
        if phone:
            return qs.filter(phone=phone).first()
        return None

    # ────────────────────────────────── #
    # Atualizações pontuais
    # ────────────────────────────────── #
    @transaction.atomic
    def force_stage(self, clinic_id: str, lead_id: str, stage_key: str) -> bool:
        obj = LeadModel.objects.select_for_update().filter(id=lead_id, clinic_id=clinic_id).first()
        if obj is None:
            return False
        obj.stage_key = stage_key
        obj.save(update_fields=["stage_key", "updated_at"])
        return True

    def touch_contact(self, clinic_id: str, lead_id: str, at: datetime) -> None:
        self._update(clinic_id, lead_id, last_contact_at=at)

    def set_next_action(self, clinic_id: str, lead_id: str, at: datetime | None) -> None:
        self._update(clinic_id, lead_id, next_action_at=at)

    def save_conversion(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        lead_id: str,
        converted_to_client: bool,
        converted_value_eur: Decimal | None,
        converted_service_name: str | None,
        converted_at: datetime | None,
        post_visit_outcome_reason: str | None,
    ) -> LeadEntity:
        return self._update(
            clinic_id,
            lead_id,
            converted_to_client=converted_to_client,
            converted_value_eur=converted_value_eur,
            converted_service_name=converted_service_name,
            converted_at=converted_at,
            post_visit_outcome_reason=post_visit_outcome_reason,
        )

    def set_whatsapp_block(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        lead_id: str,
        blocked: bool,
        reason: str | None,
        user_id: str | None,
        at: datetime | None,
    ) -> LeadEntity:
        return self._update(
            clinic_id,
            lead_id,
            whatsapp_blocked=blocked,
            whatsapp_blocked_reason=reason,
            whatsapp_blocked_at=at,
            whatsapp_blocked_by_user_id=user_id,
        )

    @transaction.atomic
    def _update(self, clinic_id: str, lead_id: str, **changes: Any) -> LeadEntity:
        obj = LeadModel.objects.select_for_update().get(id=lead_id, clinic_id=clinic_id)
        for name, value in changes.items():
            setattr(obj, name, value)
        obj.save(update_fields=[*changes, "updated_at"])
        return LeadEntity.from_model(obj)
