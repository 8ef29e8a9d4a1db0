from __future__ import annotations

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from clinic_ops_api.tasks import iter_clinic_ids
from lead_pipeline.adapters.config.composition_root import setup_di_container_from_settings
from lead_pipeline.core.application.commands.pending_action_commands import (
    DispatchDuePendingActionsCommand,
)


class Command(BaseCommand):
    """
    Publica na hora as ações pendentes vencidas (sem passar pelo Celery).
    Útil para operação manual e depuração do discador.
    """
    help = "Despacha as ações pendentes vencidas de uma ou de todas as clínicas."

    def add_arguments(self, parser):
        parser.add_argument("--clinic-id", type=str, help="UUID da clínica (opcional – roda todas se omitido).")

    def handle(self, *args, **options):
        container = setup_di_container_from_settings(settings)
        command_bus = container.command_bus()

        clinic_ids = [options["clinic_id"]] if options.get("clinic_id") else list(iter_clinic_ids())
        total = 0
        for clinic_id in clinic_ids:
            events = command_bus.dispatch(
                DispatchDuePendingActionsCommand(clinic_id=clinic_id, now=timezone.now())
            )
            total += len(events)
            self.stdout.write(f"  • clínica {clinic_id}: {len(events)} ações despachadas")

        self.stdout.write(self.style.SUCCESS(f"✅ {total} ações despachadas em {len(clinic_ids)} clínica(s)."))
