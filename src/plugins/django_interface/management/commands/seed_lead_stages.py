from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import transaction

from lead_pipeline.adapters.config.composition_root import setup_di_container_from_settings
from lead_pipeline.core.domain.lead_stages import BUILTIN_STAGE_CATALOG


class Command(BaseCommand):
    help = "Seed do catálogo de etapas do funil (lead_stages)"

    @transaction.atomic
    def handle(self, *args, **options):
        self.stdout.write("🌿 Iniciando seeding de lead_stages...")
        container = setup_di_container_from_settings(settings)
        count = container.lead_stage_catalog_repo().upsert_many(BUILTIN_STAGE_CATALOG)
        self.stdout.write(self.style.SUCCESS(f"✅ Seeding concluído: {count} etapas gravadas."))
