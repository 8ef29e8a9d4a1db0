from collections.abc import Callable, Iterable

import structlog

from lead_pipeline.core.domain.events.events import DomainEvent

logger = structlog.get_logger(__name__)

EventHandler = Callable[[DomainEvent], None]


class EventDispatcher:
    """
    Dispatcher síncrono de eventos de domínio.

    Os assinantes são efeitos colaterais (espelho da agenda externa, discador):
    a escrita que gerou o evento já foi gravada, então erros de um assinante
    são registrados e não interrompem os demais nem o chamador.
    """
    def __init__(self) -> None:
        self._subs: dict[type[DomainEvent], list[EventHandler]] = {}

    def subscribe(self, event_type: type[DomainEvent], handler: EventHandler) -> None:
        self._subs.setdefault(event_type, []).append(handler)
        logger.debug("event.subscribed", event_type=event_type.__name__, handler_name=self._name(handler))

    def dispatch(self, event: DomainEvent) -> None:
        name = type(event).__name__
        handlers = self._subs.get(type(event), [])
        clinic_id = getattr(event, "clinic_id", None)
        logger.info("event.dispatch", event_name=name, listeners=len(handlers), clinic_id=str(clinic_id))
        for h in handlers:
            try:
                h(event)
            except Exception as e:
                logger.error(
                    "event.handler_error",
                    event_name=name,
                    handler_name=self._name(h),
                    clinic_id=str(clinic_id),
                    error=str(e),
                    exc_info=True,
                )

    def dispatch_all(self, events: Iterable[object]) -> int:
        """Publica, em ordem, os itens que forem `DomainEvent`; devolve quantos."""
        count = 0
        for evt in events:
            if isinstance(evt, DomainEvent):
                self.dispatch(evt)
                count += 1
        return count

    @staticmethod
    def _name(handler: Callable) -> str:
        return getattr(handler, "__name__", handler.__class__.__name__)
