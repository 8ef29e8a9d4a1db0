import os

from config.structlog_config import configure_logging

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

from django.conf import settings  # noqa: E402
from django.core.asgi import get_asgi_application  # noqa: E402

application = get_asgi_application()
configure_logging(level=settings.LOG_LEVEL, json_logs=settings.JSON_LOGS)
