from typing import Any

from lead_pipeline.core.domain.repositories.audit_log_repository import AuditLogRepository
from plugins.django_interface.models import AuditLog as AuditLogModel


class AuditLogRepoImpl(AuditLogRepository):
    def record(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        entity_type: str,
        entity_id: str,
        action: str,
        actor_type: str,
        actor_id: str | None,
        meta: dict[str, Any],
    ) -> None:
        AuditLogModel.objects.create(
            clinic_id=clinic_id,
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action,
            actor_type=actor_type,
            actor_id=str(actor_id) if actor_id is not None else None,
            meta=meta or {},
        )
