from __future__ import annotations

from typing import Any

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from plugins.django_interface.models import Clinic, ClinicMembership


class Command(BaseCommand):
    """
    Cria (ou reaproveita) uma clínica e um usuário da equipe vinculado a ela.
    Idempotente: rodar de novo só atualiza senha e vínculo.
    """
    help = "Cria uma clínica e o usuário da equipe que a administra."

    def add_arguments(self, parser) -> None:
        parser.add_argument("--name", type=str, required=True, help="Nome da clínica.")
        parser.add_argument("--username", type=str, required=True, help="Login do usuário da equipe.")
        parser.add_argument("--password", type=str, required=True, help="Senha do usuário da equipe.")
        parser.add_argument("--time-zone", type=str, default=settings.CLINIC_TIMEZONE, help="Fuso da agenda.")
        parser.add_argument("--clinic-id", type=str, help="UUID fixo (útil com DEFAULT_CLINIC_ID).")

    @transaction.atomic
    def handle(self, *args: Any, **opt: Any) -> None:
        defaults = {"name": opt["name"], "time_zone": opt["time_zone"]}
        if opt.get("clinic_id"):
            clinic, created = Clinic.objects.update_or_create(id=opt["clinic_id"], defaults=defaults)
        else:
            clinic, created = Clinic.objects.get_or_create(name=opt["name"], defaults=defaults)

        User = get_user_model()
        user, _ = User.objects.get_or_create(username=opt["username"])
        user.set_password(opt["password"])
        user.save()

        existing = ClinicMembership.objects.filter(user=user).exclude(clinic=clinic).first()
        if existing:
            raise CommandError(f"Usuário '{user.username}' já pertence à clínica {existing.clinic_id}.")
        ClinicMembership.objects.get_or_create(
            user=user, defaults={"clinic": clinic, "role": ClinicMembership.Role.OWNER}
        )

        verb = "criada" if created else "atualizada"
        self.stdout.write(self.style.SUCCESS(f"✅ Clínica '{clinic.name}' {verb}. ID: {clinic.id}"))
