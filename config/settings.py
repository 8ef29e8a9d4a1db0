from decimal import Decimal
from pathlib import Path

from celery.schedules import crontab
from decouple import Csv, config

# -------------------------------
# Diretórios base
# -------------------------------
BASE_DIR = Path(__file__).resolve().parent.parent

# -------------------------------
# Segurança e debug
# -------------------------------
SECRET_KEY = config('SECRET_KEY', default='django-insecure-dev-only-change-me')
DEBUG = config('DEBUG', default=False, cast=bool)
ALLOWED_HOSTS = config('ALLOWED_HOSTS', default='localhost,127.0.0.1,testserver', cast=Csv())

# -------------------------------
# Cookies & CSRF
# -------------------------------
SESSION_COOKIE_SECURE   = config('SESSION_COOKIE_SECURE', default=False, cast=bool) # Desenvolvido para HTTPS
SESSION_COOKIE_HTTPONLY = config('SESSION_COOKIE_HTTPONLY', default=True, cast=bool)
SESSION_COOKIE_SAMESITE = config('SESSION_COOKIE_SAMESITE', default='Lax')
CSRF_COOKIE_SECURE      = config('CSRF_COOKIE_SECURE', default=False, cast=bool) # Desenvolvido para HTTPS
CSRF_COOKIE_HTTPONLY    = config('CSRF_COOKIE_HTTPONLY', default=True, cast=bool)
CSRF_COOKIE_SAMESITE    = config('CSRF_COOKIE_SAMESITE', default='Lax')

SECURE_SSL_REDIRECT            = config('SECURE_SSL_REDIRECT', default=False, cast=bool)
SECURE_HSTS_SECONDS            = config('SECURE_HSTS_SECONDS', default=0, cast=int)
SECURE_HSTS_INCLUDE_SUBDOMAINS = config('SECURE_HSTS_INCLUDE_SUBDOMAINS', default=False, cast=bool)
SECURE_PROXY_SSL_HEADER        = ('HTTP_X_FORWARDED_PROTO', 'https')

# -------------------------------
# CORS
# -------------------------------
CORS_ALLOW_ALL_ORIGINS = config('CORS_ALLOW_ALL_ORIGINS', default=False, cast=bool)
CORS_ALLOW_CREDENTIALS = config('CORS_ALLOW_CREDENTIALS', default=True, cast=bool)
CSRF_TRUSTED_ORIGINS   = config('CSRF_TRUSTED_ORIGINS', default='http://localhost:3000', cast=Csv())
CORS_ALLOWED_ORIGINS   = config('CORS_ALLOWED_ORIGINS', default='http://localhost:3000', cast=Csv())
CORS_ALLOW_METHODS     = config('CORS_ALLOW_METHODS', default='GET,POST,PUT,PATCH,DELETE,OPTIONS', cast=Csv())
CORS_ALLOW_HEADERS     = config(
    'CORS_ALLOW_HEADERS', default='Authorization,Content-Type,X-CSRFToken,X-Webhook-Secret', cast=Csv()
)

# -------------------------------
# Webhooks & tenant
# -------------------------------
# Segredo compartilhado do header X-Webhook-Secret; vazio desativa todos os webhooks (401).
WEBHOOK_SECRET    = config('WEBHOOK_SECRET', default='')
# Fallback explícito de clínica única; vazio = sem fallback.
DEFAULT_CLINIC_ID = config('DEFAULT_CLINIC_ID', default='')

# -------------------------------
# Clínica (agenda, telefones, custos)
# -------------------------------
CLINIC_TIMEZONE               = config('CLINIC_TIMEZONE', default='Europe/Madrid')
CLINIC_PHONE_REGION           = config('CLINIC_PHONE_REGION', default='ES')
CLINIC_PHONE_NATIONAL_DIGITS  = config('CLINIC_PHONE_NATIONAL_DIGITS', default=9, cast=int)
CALL_COST_PER_MINUTE_EUR      = config('CALL_COST_PER_MINUTE_EUR', default='0.10', cast=Decimal)
STAGE_TRANSITION_MAX_TRIES    = config('STAGE_TRANSITION_MAX_TRIES', default=3, cast=int)

# -------------------------------
# Calendário externo (espelho das citas)
# -------------------------------
CALENDAR_EXPORT_URL     = config('CALENDAR_EXPORT_URL', default='')
CALENDAR_EXPORT_TOKEN   = config('CALENDAR_EXPORT_TOKEN', default='')
CALENDAR_EXPORT_TIMEOUT = config('CALENDAR_EXPORT_TIMEOUT', default=10.0, cast=float)

# -------------------------------
# Discador (retentativas de ligação)
# -------------------------------
OUTBOUND_DIALER_URL   = config('OUTBOUND_DIALER_URL', default='')
OUTBOUND_DIALER_TOKEN = config('OUTBOUND_DIALER_TOKEN', default='')

# -------------------------------
# Celery
# -------------------------------
CELERY_BROKER_URL                 = config('CELERY_BROKER_URL', default='memory://')
CELERY_RESULT_BACKEND             = config('CELERY_RESULT_BACKEND', default='cache+memory://')
CELERY_TASK_ACKS_LATE             = True
CELERY_TASK_REJECT_ON_WORKER_LOST = True
CELERY_WORKER_PREFETCH_MULTIPLIER = 1
CELERY_TASK_ALWAYS_EAGER          = config('CELERY_TASK_ALWAYS_EAGER', default=False, cast=bool)
CELERY_ACCEPT_CONTENT             = ["json"]
CELERY_TASK_SERIALIZER            = "json"
CELERY_TASK_QUEUES = {
    "default":         {"exchange": "default",         "routing_key": "default"},
    "dead_letter":     {"exchange": "dead_letter",     "routing_key": "dead_letter"},
    "pending_actions": {"exchange": "pending_actions", "routing_key": "pending_actions"},
}
CELERY_TASK_DEFAULT_QUEUE = 'default'
CELERY_TASK_DEFAULT_EXCHANGE = 'default'
CELERY_TASK_DEFAULT_ROUTING_KEY = 'default'

# --- AGENDADOR (CELERY BEAT) ---
CELERY_BEAT_SCHEDULE = {
    # Publica as retentativas de ligação vencidas a cada 5 minutos.
    'dispatch-due-pending-actions': {
        'task': 'clinic_ops_api.tasks.dispatch_due_pending_actions',
        'schedule': crontab(minute='*/5'),
    },
}

# -------------------------------
# Cache (locks por clínica)
# -------------------------------
CACHES = {
    "default": {
        "BACKEND": config('CACHE_BACKEND', default='django.core.cache.backends.locmem.LocMemCache'),
        "LOCATION": config('CACHE_LOCATION', default='clinic-ops'),
    }
}

# -------------------------------
# Logging
# -------------------------------
JSON_LOGS = config('JSON_LOGS', default=False, cast=bool)
LOG_LEVEL = config('LOG_LEVEL', default='INFO')
# structlog assume o root logger em config.structlog_config.configure_logging
LOGGING_CONFIG = None

# -------------------------------
# Apps, Middleware, URLs
# -------------------------------
INSTALLED_APPS = [
    'corsheaders',
    'django.contrib.admin',
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'django.contrib.sessions',
    'django.contrib.messages',
    'django.contrib.staticfiles',
    'rest_framework',
    'drf_yasg',
    'django_prometheus',
    'clinic_ops_api.apps.ClinicOpsConfig',
    'plugins.django_interface.apps.DjangoInterfaceConfig',
]

MIDDLEWARE = [
    'django_prometheus.middleware.PrometheusBeforeMiddleware',
    'corsheaders.middleware.CorsMiddleware',
    'django.middleware.security.SecurityMiddleware',
    'django.contrib.sessions.middleware.SessionMiddleware',
    'django.middleware.common.CommonMiddleware',
    'django.middleware.csrf.CsrfViewMiddleware',
    'django.contrib.auth.middleware.AuthenticationMiddleware',
    'plugins.django_interface.request_middleware.RequestContextMiddleware',
    'django.contrib.messages.middleware.MessageMiddleware',
    'django_prometheus.middleware.PrometheusAfterMiddleware',
]

ROOT_URLCONF = 'clinic_ops_api.urls'
WSGI_APPLICATION = 'clinic_ops_api.wsgi.application'
ASGI_APPLICATION = 'clinic_ops_api.asgi.application'

# -------------------------------
# Templates
# -------------------------------
TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [
                'django.template.context_processors.debug',
                'django.template.context_processors.request',
                'django.contrib.auth.context_processors.auth',
                'django.contrib.messages.context_processors.messages',
            ],
        },
    },
]

# -------------------------------
# REST Framework
# -------------------------------
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework.authentication.SessionAuthentication",
        "rest_framework.authentication.BasicAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
    "EXCEPTION_HANDLER": "plugins.django_interface.exception_handler.api_exception_handler",
}
SWAGGER_SETTINGS = {
    'SECURITY_DEFINITIONS': {
        'Basic': {'type': 'basic'},
        'WebhookSecret': {'type': 'apiKey', 'name': 'X-Webhook-Secret', 'in': 'header'},
    },
}

# -------------------------------
# Banco de Dados
# -------------------------------
DB_ENGINE = config('DB_ENGINE', default='django.db.backends.sqlite3')
if DB_ENGINE.endswith('sqlite3'):
    DATABASES = {
        'default': {
            'ENGINE': DB_ENGINE,
            'NAME':   config('DB_NAME', default=str(BASE_DIR / 'db.sqlite3')),
        }
    }
else:
    DATABASES = {
        'default': {
            'ENGINE':   DB_ENGINE,
            'NAME':     config('DB_NAME'),
            'USER':     config('DB_USER', default=''),
            'PASSWORD': config('DB_PASS', default=''),
            'HOST':     config('DB_HOST', default='localhost'),
            'PORT':     config('DB_PORT', default='5432'),
        }
    }

# -------------------------------
# Internacionalização
# -------------------------------
LANGUAGE_CODE = 'es-es'
TIME_ZONE     = CLINIC_TIMEZONE
USE_I18N      = True
USE_TZ        = True

# -------------------------------
# Arquivos estáticos
# -------------------------------
STATIC_URL = '/static/'
STATIC_ROOT = BASE_DIR / 'staticfiles'

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'
