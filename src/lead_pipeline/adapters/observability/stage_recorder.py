import structlog

from lead_pipeline.adapters.observability.metrics import STAGE_TRANSITIONS
from lead_pipeline.core.domain.events.events import LeadStageChangedEvent

logger = structlog.get_logger(__name__)


class StageTransitionRecorder:
    """Assinante de `LeadStageChangedEvent`: contador por etapa de destino e modo."""

    def __call__(self, event: LeadStageChangedEvent) -> None:
        mode = "fallback" if event.fallback else "atomic"
        STAGE_TRANSITIONS.labels(event.to_stage_key, mode).inc()
        logger.debug(
            "lead_stage.recorded",
            lead_id=str(event.lead_id),
            from_stage=event.from_stage_key,
            to_stage=event.to_stage_key,
            mode=mode,
        )
