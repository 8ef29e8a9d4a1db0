import os

from django.core.wsgi import get_wsgi_application

from config.structlog_config import configure_logging

# 1) Ajuste padrão de settings
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# 2) Cria a aplicação WSGI (o DI é montado em ClinicOpsConfig.ready)
application = get_wsgi_application()

# 3) Logging estruturado
from django.conf import settings  # noqa: E402

configure_logging(level=settings.LOG_LEVEL, json_logs=settings.JSON_LOGS)
