from datetime import datetime

from django.utils import timezone

from lead_pipeline.core.domain.entities.current_call_entity import CurrentCallEntity
from lead_pipeline.core.domain.repositories.current_call_repository import CurrentCallRepository
from plugins.django_interface.models import SystemState as SystemStateModel


class CurrentCallRepoImpl(CurrentCallRepository):
    def get(self, clinic_id: str) -> CurrentCallEntity:
        obj = SystemStateModel.objects.filter(clinic_id=clinic_id).first()
        if obj is None:
            return CurrentCallEntity(clinic_id=clinic_id)
        return CurrentCallEntity.from_model(obj)

    def set_current(self, clinic_id: str, external_call_id: str, lead_id: str | None, started_at: datetime) -> None:
        SystemStateModel.objects.update_or_create(
            clinic_id=clinic_id,
            defaults=dict(
                current_call_external_id=external_call_id,
                current_call_lead_id=lead_id,
                current_call_started_at=started_at,
            ),
        )

    def clear(self, clinic_id: str, external_call_id: str) -> None:
        SystemStateModel.objects.filter(
            clinic_id=clinic_id, current_call_external_id=external_call_id
        ).update(
            current_call_external_id=None,
            current_call_lead_id=None,
            current_call_started_at=None,
            updated_at=timezone.now(),
        )
