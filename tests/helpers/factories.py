"""
Fábricas mínimas para os testes: clínica, usuário da equipe e lead.
Telefones seguem o formato nacional espanhol (9 dígitos).
"""
from __future__ import annotations

import itertools

from django.contrib.auth import get_user_model

from plugins.django_interface.models import Clinic, ClinicMembership, Lead

_phone_seq = itertools.count(612000001)
_user_seq = itertools.count(1)


def next_phone() -> str:
    return str(next(_phone_seq))


def make_clinic(name: str = "Clínica Centro", time_zone: str = "Europe/Madrid") -> Clinic:
    return Clinic.objects.create(name=name, time_zone=time_zone)


def make_staff_user(clinic: Clinic, role: str = ClinicMembership.Role.STAFF):
    n = next(_user_seq)
    user = get_user_model().objects.create_user(username=f"equipo{n}", password="secret123")
    ClinicMembership.objects.create(user=user, clinic=clinic, role=role)
    return user


def make_lead(clinic: Clinic, stage_key: str = "new_lead", phone: str | None = None, **extra) -> Lead:
    return Lead.objects.create(
        clinic=clinic,
        full_name=extra.pop("full_name", "Ana Pérez"),
        phone=phone or next_phone(),
        stage_key=stage_key,
        **extra,
    )


def stage_engine_with(transitioner):
    """Motor de etapas real com outro `StageTransitioner` (ex.: um que sempre falha)."""
    from lead_pipeline.adapters.config.composition_root import container
    from lead_pipeline.core.application.services.lead_stage_engine import LeadStageEngine

    return LeadStageEngine(
        transitioner=transitioner,
        lead_repo=container.lead_repo(),
        pending_action_repo=container.pending_action_repo(),
        catalog_service=container.stage_catalog_service(),
        dispatcher=container.event_dispatcher(),
    )
