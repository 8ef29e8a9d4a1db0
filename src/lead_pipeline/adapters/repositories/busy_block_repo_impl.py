from datetime import datetime

from django.db import transaction

from lead_pipeline.core.domain.entities.busy_block_entity import BusyBlockEntity
from lead_pipeline.core.domain.repositories.busy_block_repository import BusyBlockRepository
from plugins.django_interface.models import BusyBlock as BusyBlockModel


class BusyBlockRepoImpl(BusyBlockRepository):
    def find_by_id(self, clinic_id: str, block_id: str) -> BusyBlockEntity | None:
        try:
            return BusyBlockEntity.from_model(BusyBlockModel.objects.get(id=block_id, clinic_id=clinic_id))
        except BusyBlockModel.DoesNotExist:
            return None

    def find_overlapping(
        self, clinic_id: str, start_at: datetime, end_at: datetime, exclude_id: str | None = None
    ) -> BusyBlockEntity | None:
        qs = BusyBlockModel.objects.filter(clinic_id=clinic_id, start_at__lt=end_at, end_at__gt=start_at)
        if exclude_id:
            qs = qs.exclude(id=exclude_id)
        obj = qs.order_by("start_at").first()
        return BusyBlockEntity.from_model(obj) if obj else None

    def create(
        self, *, clinic_id: str, start_at: datetime, end_at: datetime,
        reason: str | None, created_by_user_id: str | None,
    ) -> BusyBlockEntity:
        obj = BusyBlockModel.objects.create(
            clinic_id=clinic_id,
            start_at=start_at,
            end_at=end_at,
            reason=(reason or "").strip() or None,
            created_by_user_id=created_by_user_id,
        )
        return BusyBlockEntity.from_model(obj)

    @transaction.atomic
    def update_range(
        self, *, clinic_id: str, block_id: str, start_at: datetime, end_at: datetime, reason: str | None = None
    ) -> BusyBlockEntity:
        obj = BusyBlockModel.objects.select_for_update().get(id=block_id, clinic_id=clinic_id)
        obj.start_at = start_at
        obj.end_at = end_at
        if reason is not None:
            obj.reason = reason.strip() or None
        obj.save(update_fields=["start_at", "end_at", "reason"])
        return BusyBlockEntity.from_model(obj)

    def delete(self, clinic_id: str, block_id: str) -> bool:
        deleted, _ = BusyBlockModel.objects.filter(id=block_id, clinic_id=clinic_id).delete()
        return deleted > 0

    def list_range(self, clinic_id: str, start_at: datetime, end_at: datetime) -> list[BusyBlockEntity]:
        qs = BusyBlockModel.objects.filter(
            clinic_id=clinic_id, start_at__lt=end_at, end_at__gt=start_at
        ).order_by("start_at")
        return [BusyBlockEntity.from_model(m) for m in qs]
