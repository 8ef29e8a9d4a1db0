import hmac

import structlog
from django.conf import settings
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.permissions import BasePermission

logger = structlog.get_logger(__name__)

WEBHOOK_SECRET_HEADER = "X-Webhook-Secret"


class WebhookUnauthorized(APIException):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Unauthorized"
    default_code = "unauthorized"


class HasWebhookSecret(BasePermission):
    """
    Exige o header X-Webhook-Secret igual a `WEBHOOK_SECRET`.
    Sem segredo configurado todos os webhooks respondem 401.
    """

    def has_permission(self, request, view):
        expected = settings.WEBHOOK_SECRET or ""
        provided = request.headers.get(WEBHOOK_SECRET_HEADER) or ""
        if expected and provided and hmac.compare_digest(provided.encode(), expected.encode()):
            return True
        logger.warning(
            "webhook.unauthorized",
            path=request.path,
            configured=bool(expected),
            header_present=bool(provided),
        )
        raise WebhookUnauthorized()


class IsClinicMember(BasePermission):
    """Usuário autenticado e vinculado a uma clínica."""

    def has_permission(self, request, view):
        user = request.user
        if not (user and user.is_authenticated):
            return False
        return hasattr(user, "clinic_membership")
