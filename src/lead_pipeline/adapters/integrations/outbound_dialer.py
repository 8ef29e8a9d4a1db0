import httpx
import structlog

from lead_pipeline.adapters.integrations.base import BaseHttpClient
from lead_pipeline.core.domain.events.events import PendingActionDueEvent
from lead_pipeline.core.domain.events.exceptions import ExternalServiceError

logger = structlog.get_logger(__name__)


class OutboundDialerClient(BaseHttpClient):
    """
    Assinante de `PendingActionDueEvent`: entrega a ação vencida (ex.: `retry_call`)
    ao discador do agente de voz. Sem URL configurada apenas registra no log.
    """

    def __init__(self, base_url: str | None, token: str | None = None, timeout: float | None = None):
        super().__init__("dialer", base_url or "", token, timeout)

    def __call__(self, event: PendingActionDueEvent) -> None:
        body = {
            "clinic_id": str(event.clinic_id),
            "action_id": str(event.action_id),
            "lead_id": str(event.lead_id) if event.lead_id else None,
            "action_type": event.action_type,
            "payload": event.payload,
        }
        if not self.base_url:
            logger.info("dialer.not_configured", **body)
            return
        try:
            self._request("POST", "/actions", json=body)
        except httpx.HTTPError as exc:
            logger.error("dialer.dispatch_failed", action_id=str(event.action_id), error=str(exc))
            raise ExternalServiceError(f"dialer dispatch failed: {exc}") from exc
        logger.info("dialer.dispatched", action_id=str(event.action_id), action_type=event.action_type)
