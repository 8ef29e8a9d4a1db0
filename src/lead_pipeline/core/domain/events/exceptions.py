class LeadPipelineError(Exception):
    """Classe base para todas as exceções do domínio de leads/agenda."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class BusinessValidationError(LeadPipelineError):
    """
    Entrada rejeitada por regra de negócio (HTTP 400).
    A mensagem é exibida ao usuário tal como está; nunca é retentada.
    """
    pass


class SlotValidationError(BusinessValidationError):
    """Intervalo fora da política da agenda (grade, horário, dia útil)."""
    pass


class InvalidPhoneError(BusinessValidationError):
    pass


class OutcomeValidationError(BusinessValidationError):
    """Valor/serviço/motivo obrigatório ausente no resultado pós-visita."""
    pass


class SlotUnavailableError(LeadPipelineError):
    """
    Conflito de disponibilidade (HTTP 409).
    `source` identifica a fonte que ocupa o horário:
    - appointment: outra cita ativa
    - busy_block: bloqueio interno
    - calendar_event: calendário externo sincronizado
    """

    def __init__(self, message: str, source: str) -> None:
        super().__init__(message)
        self.source = source


class NotFoundError(LeadPipelineError):
    pass


class LeadNotFoundError(NotFoundError):
    pass


class AppointmentNotFoundError(NotFoundError):
    pass


class BusyBlockNotFoundError(NotFoundError):
    pass


class PendingActionNotFoundError(NotFoundError):
    pass


class TenantResolutionError(LeadPipelineError):
    """Requisição sem clínica resolvível (nem no payload nem no fallback configurado)."""
    pass


class StageTransitionError(LeadPipelineError):
    """O procedimento atômico de transição reportou falha."""
    pass


class CatalogUnavailableError(LeadPipelineError):
    """Tabela de etapas inacessível; o chamador usa o catálogo embutido."""
    pass


class ExternalServiceError(LeadPipelineError):
    """
    Falha em colaborador externo (calendário, discador).
    Apenas registrada em log; o estado local prevalece.
    """
    pass
