from __future__ import annotations

from typing import Any

from rest_framework import serializers

from lead_pipeline.core.application.cqrs import PagedResult
from plugins.django_interface.permissions import IsClinicMember
from plugins.django_interface.tenancy import TenantContext, resolve_staff_tenant

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200
UUID_LOOKUP = r"[0-9a-fA-F-]{36}"


# ╭──────────────────────────────────────────────────────────────────────────╮
# │ Helper mix-in – tenant + paginação + filtros                             │
# ╰──────────────────────────────────────────────────────────────────────────╯
class ClinicScopedMixin:
    """Rotas da equipe: toda leitura/escrita fica restrita à clínica do usuário."""

    permission_classes = [IsClinicMember]
    lookup_value_regex = UUID_LOOKUP
    allowed_filters: tuple[str, ...] = ()

    def tenant(self, request) -> TenantContext:
        ctx = getattr(request, "_clinic_tenant", None)
        if ctx is None:
            ctx = resolve_staff_tenant(request.user)
            request._clinic_tenant = ctx
        return ctx

    @staticmethod
    def actor_id(request) -> str:
        return str(request.user.pk)

    @staticmethod
    def _pagination(request) -> tuple[int, int]:
        try:
            page = max(int(request.query_params.get("page", 1)), 1)
            size = int(request.query_params.get("page_size", DEFAULT_PAGE_SIZE))
        except ValueError as exc:
            raise serializers.ValidationError({"page": "page y page_size deben ser enteros."}) from exc
        return page, min(max(size, 1), MAX_PAGE_SIZE)

    def _filters(self, request) -> dict[str, Any]:
        """Só as chaves permitidas; `__in` aceita "a,b,c"."""
        clean: dict[str, Any] = {}
        for key in request.query_params:
            base = key.removesuffix("__in")
            if base not in self.allowed_filters:
                continue
            value = request.query_params.get(key)
            if key.endswith("__in"):
                clean[key] = [v for v in value.split(",") if v]
            else:
                clean[key] = value
        return clean

    @staticmethod
    def _paged_payload(res: PagedResult, serializer_cls) -> dict[str, Any]:
        return {
            "results": serializer_cls(res.items, many=True).data,
            "total_items": res.total,
            "page": res.page,
            "page_size": res.page_size,
            "total_pages": res.total_pages,
            "items_on_page": len(res.items),
        }
