"""
EXCEPTION_HANDLER do DRF: exceções de domínio → `{"error": mensagem}`.
"""
import structlog
from pydantic import ValidationError as PydanticValidationError
from rest_framework import status
from rest_framework.exceptions import ValidationError as DRFValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

from lead_pipeline.core.domain.events.exceptions import (
    BusinessValidationError,
    ExternalServiceError,
    LeadPipelineError,
    NotFoundError,
    SlotUnavailableError,
    StageTransitionError,
    TenantResolutionError,
)

logger = structlog.get_logger(__name__)

MSG_INVALID_PAYLOAD = "Payload invalido."

# ordem importa: subclasses antes das bases
STATUS_BY_EXCEPTION: tuple[tuple[type[LeadPipelineError], int], ...] = (
    (SlotUnavailableError, status.HTTP_409_CONFLICT),
    (StageTransitionError, status.HTTP_409_CONFLICT),
    (NotFoundError, status.HTTP_404_NOT_FOUND),
    (BusinessValidationError, status.HTTP_400_BAD_REQUEST),
    (TenantResolutionError, status.HTTP_400_BAD_REQUEST),
    (ExternalServiceError, status.HTTP_502_BAD_GATEWAY),
)


def _status_for(exc: LeadPipelineError) -> int:
    for exc_type, code in STATUS_BY_EXCEPTION:
        if isinstance(exc, exc_type):
            return code
    return status.HTTP_400_BAD_REQUEST


def api_exception_handler(exc, context):
    if isinstance(exc, LeadPipelineError):
        code = _status_for(exc)
        body = {"error": exc.message or str(exc)}
        if isinstance(exc, SlotUnavailableError):
            body["conflict_source"] = exc.source
        logger.info("api.domain_error", error_type=type(exc).__name__, status=code, error=body["error"])
        return Response(body, status=code)

    if isinstance(exc, PydanticValidationError):
        details = [
            {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
            for err in exc.errors()
        ]
        return Response({"error": MSG_INVALID_PAYLOAD, "details": details}, status=status.HTTP_400_BAD_REQUEST)

    response = drf_exception_handler(exc, context)
    if response is not None and isinstance(exc, DRFValidationError):
        response.data = {"error": MSG_INVALID_PAYLOAD, "details": response.data}
        return response
    if response is not None and isinstance(response.data, dict) and "detail" in response.data:
        response.data = {"error": str(response.data["detail"])}
    return response
