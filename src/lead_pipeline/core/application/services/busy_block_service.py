from __future__ import annotations

import structlog

from lead_pipeline.core.application.services.availability_service import AvailabilityService
from lead_pipeline.core.application.services.slot_rules import validate_busy_block_range
from lead_pipeline.core.domain.entities.busy_block_entity import BusyBlockEntity
from lead_pipeline.core.domain.events.exceptions import BusyBlockNotFoundError
from lead_pipeline.core.domain.repositories.busy_block_repository import BusyBlockRepository

logger = structlog.get_logger(__name__)

MSG_BLOCK_NOT_FOUND = "Bloqueo no encontrado."


class BusyBlockService:
    """Bloqueios internos: mesma grade da agenda, duração em múltiplos de 30 min."""

    def __init__(self, repo: BusyBlockRepository, availability: AvailabilityService):
        self.repo = repo
        self.availability = availability

    def create(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        time_zone: str,
        start_at,
        end_at,
        reason: str | None = None,
        created_by_user_id: str | None = None,
    ) -> BusyBlockEntity:
        slot = validate_busy_block_range(start_at, end_at, time_zone)
        self.availability.ensure_available(clinic_id, slot.start_at, slot.end_at)
        block = self.repo.create(
            clinic_id=clinic_id,
            start_at=slot.start_at,
            end_at=slot.end_at,
            reason=reason,
            created_by_user_id=created_by_user_id,
        )
        logger.info("busy_block.created", block_id=str(block.id), minutes=slot.duration_minutes)
        return block

    def move(  # noqa: PLR0913
        self,
        *,
        clinic_id: str,
        time_zone: str,
        block_id: str,
        start_at,
        end_at,
        reason: str | None = None,
    ) -> BusyBlockEntity:
        if self.repo.find_by_id(clinic_id, block_id) is None:
            raise BusyBlockNotFoundError(MSG_BLOCK_NOT_FOUND)
        slot = validate_busy_block_range(start_at, end_at, time_zone)
        self.availability.ensure_available(
            clinic_id, slot.start_at, slot.end_at, exclude_busy_block_id=str(block_id)
        )
        block = self.repo.update_range(
            clinic_id=clinic_id, block_id=block_id, start_at=slot.start_at, end_at=slot.end_at, reason=reason
        )
        logger.info("busy_block.moved", block_id=str(block_id))
        return block

    def delete(self, *, clinic_id: str, block_id: str) -> None:
        if not self.repo.delete(clinic_id, block_id):
            raise BusyBlockNotFoundError(MSG_BLOCK_NOT_FOUND)
        logger.info("busy_block.deleted", block_id=str(block_id))
