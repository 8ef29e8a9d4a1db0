from prometheus_client import Counter, Histogram

# Registradas no registry padrão; exportadas por django_prometheus em /metrics/.

STAGE_TRANSITIONS = Counter(
    "lead_stage_transitions_total",
    "Transicoes de etapa aplicadas",
    ["to_stage", "mode"],  # mode: atomic | fallback
)

BOOKING_ATTEMPTS = Counter(
    "booking_attempts_total",
    "Tentativas de agendamento/remarcacao",
    ["operation", "result"],  # result: ok | invalid | conflict
)

AVAILABILITY_CONFLICTS = Counter(
    "availability_conflicts_total",
    "Conflitos de disponibilidade por fonte",
    ["source"],
)

WEBHOOK_REQUESTS = Counter(
    "webhook_requests_total",
    "Webhooks recebidos",
    ["event", "result"],
)

EXTERNAL_CALLS = Counter(
    "external_calls_total",
    "Chamadas a colaboradores externos",
    ["provider", "result"],
)

EXTERNAL_LATENCY = Histogram(
    "external_call_seconds",
    "Latencia de colaboradores externos",
    ["provider"],
)
