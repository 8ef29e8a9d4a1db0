import os

from celery import Celery
from celery.signals import setup_logging

# Define o módulo de configurações do Django para o Celery.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("clinic_ops_api")

# Todas as configurações do Celery começam com CELERY_ (ex: CELERY_BROKER_URL).
app.config_from_object("django.conf:settings", namespace="CELERY")
app.autodiscover_tasks(["clinic_ops_api"])


@setup_logging.connect
def _configure_worker_logging(**kwargs):
    from django.conf import settings

    from config.structlog_config import configure_logging

    configure_logging(level=settings.LOG_LEVEL, json_logs=settings.JSON_LOGS)
