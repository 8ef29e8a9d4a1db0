from __future__ import annotations

import math
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol, TypeVar

import structlog

from lead_pipeline.core.domain.events.events import DomainEvent
from lead_pipeline.core.domain.services.event_dispatcher import EventDispatcher

# ───────────────────────────────────────────────
# CQRS com paginação e log de duração
# ───────────────────────────────────────────────

C = TypeVar('C')  # Command type
Q = TypeVar('Q')  # Query filtros type
R = TypeVar('R')  # Query result type
T = TypeVar('T')  # PagedResult item type

logger = structlog.get_logger(__name__)

# ───────────────────────────────────────────────
# DTOs
# ───────────────────────────────────────────────
@dataclass(frozen=True)
class CommandDTO:
    """Base para todos comandos de escrita."""
    pass

@dataclass(frozen=True)
class QueryDTO(Generic[Q]):
    """Base para consultas de leitura."""
    pass

@dataclass(frozen=True)
class PagedResult(Generic[T]):
    """Resultado paginado padrão."""
    items: Sequence[T]
    total: int
    page: int
    page_size: int
    total_pages: int = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, 'total_pages', math.ceil(self.total / self.page_size) if self.page_size else 0)

# ───────────────────────────────────────────────
# Handlers Protocols
# ───────────────────────────────────────────────
class CommandHandler(Protocol, Generic[C]):
    def handle(self, command: C) -> Any:
        """Processa um comando e aplica mudanças de estado."""
        ...

class QueryHandler(Protocol, Generic[Q, R]):
    def handle(self, query: Q) -> R:
        """Processa uma consulta e retorna um resultado."""
        ...

# ───────────────────────────────────────────────
# Buses
# ───────────────────────────────────────────────
def _log_context(dto: Any) -> dict[str, str]:
    """Comandos e consultas da clínica levam `clinic_id` para todos os logs do handler."""
    clinic_id = getattr(dto, "clinic_id", None)
    return {"clinic_id": str(clinic_id)} if clinic_id else {}


def _elapsed(start: float) -> str:
    return f"{time.perf_counter() - start:.3f}s"


class CommandBus:
    """Dispatcher de comandos com medição de duração."""
    def __init__(self) -> None:
        self._handlers: dict[type, CommandHandler] = {}

    def register(self, command_type: type[C], handler: CommandHandler[C]) -> None:
        self._handlers[command_type] = handler
        logger.debug("command.registered", command=command_type.__name__)

    def dispatch(self, command: C) -> Any:
        name = type(command).__name__
        handler = self._handlers.get(type(command))
        if not handler:
            raise ValueError(f"Nenhum handler para comando: {name}")
        start = time.perf_counter()
        with structlog.contextvars.bound_contextvars(**_log_context(command)):
            try:
                result = handler.handle(command)
            except Exception as exc:
                logger.info("command.failed", command=name, error_type=type(exc).__name__, duration=_elapsed(start))
                raise
            logger.info("command.executed", command=name, duration=_elapsed(start))
        return result

class QueryBus:
    """Dispatcher de queries com medição de duração."""
    def __init__(self) -> None:
        self._handlers: dict[type, QueryHandler] = {}

    def register(self, query_type: type[QueryDTO], handler: QueryHandler[Any, Any]) -> None:
        self._handlers[query_type] = handler
        logger.debug("query.registered", query=query_type.__name__)

    def dispatch(self, query: QueryDTO[Any]) -> Any:
        name = type(query).__name__
        handler = self._handlers.get(type(query))
        if not handler:
            raise ValueError(f"Nenhum handler para query: {name}")
        start = time.perf_counter()
        with structlog.contextvars.bound_contextvars(**_log_context(query)):
            result = handler.handle(query)
            logger.debug("query.executed", query=name, duration=_elapsed(start))
        return result

class CommandBusImpl(CommandBus):
    """
    CommandBus que publica os eventos de domínio devolvidos pelos handlers.
    Handlers devolvem um evento, uma lista de eventos ou uma entidade qualquer;
    só os `DomainEvent` seguem para o dispatcher, depois que o handler retorna.
    """
    def __init__(self, dispatcher: EventDispatcher):
        super().__init__()
        self.dispatcher = dispatcher

    def dispatch(self, command: Any) -> Any:
        result = super().dispatch(command)
        if isinstance(result, DomainEvent):
            self.dispatcher.dispatch(result)
        elif isinstance(result, list | tuple):
            self.dispatcher.dispatch_all(result)
        return result

class QueryBusImpl(QueryBus):
    """Implementação padrão de QueryBus."""
    pass
