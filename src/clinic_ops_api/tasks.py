from __future__ import annotations

import time
from collections.abc import Iterable
from contextlib import contextmanager

import structlog
from celery import Task, shared_task
from django.core.cache import cache
from django.utils import timezone

from lead_pipeline.core.application.commands.pending_action_commands import (
    DispatchDuePendingActionsCommand,
)
from plugins.django_interface.models import Clinic

log = structlog.get_logger(__name__)

# ──────────────────────────────────────────────────────────────────────────
# Constantes de filas e parâmetros
# ──────────────────────────────────────────────────────────────────────────
QUEUE_PENDING_ACTIONS = "pending_actions"
BUSY_RETRY_SECONDS = 60          # espera se o lock da clínica já estiver ocupado
CLINIC_LOCK_TTL_SEC = 5 * 60


# ──────────────────────────────────────────────────────────────────────────
# Base Task com DLQ
# ──────────────────────────────────────────────────────────────────────────
class BaseTaskWithDLQ(Task):
    """
    Envia p/ Dead Letter Queue quando falhar após todas as retentativas.
    Em 'task_always_eager' não há broker: apenas registra.
    """
    def on_failure(self, exc, task_id, args, kwargs, einfo):
        if getattr(self.app.conf, "task_always_eager", False):
            log.critical("task.failed_eager_mode", task=self.name, task_id=task_id, error=str(exc))
        else:
            log.critical(
                "task.failed_dlq_redirect",
                task=self.name, task_id=task_id, error=str(exc), queue="dead_letter",
            )
            self.app.send_task(
                self.name,
                args=args,
                kwargs=kwargs,
                queue="dead_letter",
                routing_key="dead_letter",
            )
        super().on_failure(exc, task_id, args, kwargs, einfo)


# ──────────────────────────────────────────────────────────────────────────
# Lock distribuído por clínica
# ──────────────────────────────────────────────────────────────────────────
@contextmanager
def clinic_lock(clinic_id: str, namespace: str, ttl: int = CLINIC_LOCK_TTL_SEC):
    key = f"locks:{namespace}:clinic:{clinic_id}"
    acquired = cache.add(key, str(time.time()), ttl)
    try:
        yield acquired
    finally:
        if acquired:
            cache.delete(key)


def iter_clinic_ids() -> Iterable[str]:
    return (str(cid) for cid in Clinic.objects.values_list("id", flat=True))


# ──────────────────────────────────────────────────────────────────────────
# Ações pendentes (retentativas de ligação etc.)
# ──────────────────────────────────────────────────────────────────────────
@shared_task(
    base=BaseTaskWithDLQ, bind=True, max_retries=3, default_retry_delay=60,
    acks_late=True, queue=QUEUE_PENDING_ACTIONS
)
def dispatch_pending_actions_for_clinic(self, clinic_id: str) -> int:
    """Publica as ações vencidas de UMA clínica, sob lock da clínica."""
    from lead_pipeline.adapters.config.composition_root import container

    with clinic_lock(clinic_id, "pending_actions") as ok:
        if not ok:
            log.warning("clinic_lock.busy", clinic_id=clinic_id)
            raise self.retry(countdown=BUSY_RETRY_SECONDS)

        events = container.command_bus().dispatch(
            DispatchDuePendingActionsCommand(clinic_id=clinic_id, now=timezone.now())
        )
        log.info("pending_action.clinic_done", clinic_id=clinic_id, dispatched=len(events))
        return len(events)


@shared_task(queue=QUEUE_PENDING_ACTIONS)
def dispatch_due_pending_actions() -> int:
    """[Orquestração] Enfileira o despacho de ações vencidas para cada clínica."""
    total = 0
    for clinic_id in iter_clinic_ids():
        dispatch_pending_actions_for_clinic.delay(clinic_id)
        total += 1
    log.info("pending_action.schedule.enqueued", clinics=total)
    return total
