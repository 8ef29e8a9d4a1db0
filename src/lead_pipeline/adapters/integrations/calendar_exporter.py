import httpx
import structlog

from lead_pipeline.adapters.integrations.base import BaseHttpClient
from lead_pipeline.core.domain.entities.appointment_entity import AppointmentEntity
from lead_pipeline.core.domain.events.events import AppointmentBookedEvent
from lead_pipeline.core.domain.events.exceptions import ExternalServiceError
from lead_pipeline.core.domain.repositories.appointment_repository import AppointmentRepository
from lead_pipeline.core.domain.services.calendar_exporter import CalendarExporter

logger = structlog.get_logger(__name__)

DEFAULT_SUMMARY = "Cita"
DEFAULT_DESCRIPTION = "Cita creada desde el dashboard"


class NullCalendarExporter(CalendarExporter):
    """Sem integração configurada: nada é exportado."""

    def export_appointment(self, appointment: AppointmentEntity, clinic_id: str) -> str | None:
        logger.debug("calendar.export_skipped", appointment_id=str(appointment.id))
        return None


class HttpCalendarExporter(BaseHttpClient, CalendarExporter):
    """
    Exporta para o serviço de sincronização de calendário da clínica.

    POST   {base_url}/events              → cria   (resposta: {"id": "..."})
    PUT    {base_url}/events/{event_id}   → remarca
    """

    def __init__(self, base_url: str, token: str | None = None, timeout: float | None = None):
        super().__init__("calendar", base_url, token, timeout)

    def export_appointment(self, appointment: AppointmentEntity, clinic_id: str) -> str | None:
        body = {
            "clinic_id": str(clinic_id),
            "summary": appointment.title or DEFAULT_SUMMARY,
            "description": appointment.notes or DEFAULT_DESCRIPTION,
            "start": appointment.start_at.isoformat(),
            "end": appointment.end_at.isoformat(),
            "appointment_id": str(appointment.id),
        }
        try:
            if appointment.external_event_id:
                resp = self._request("PUT", f"/events/{appointment.external_event_id}", json=body)
            else:
                resp = self._request("POST", "/events", json=body)
        except httpx.HTTPError as exc:
            raise ExternalServiceError(f"calendar export failed: {exc}") from exc

        data = resp.json() if resp.content else {}
        return data.get("id") or appointment.external_event_id


class AppointmentCalendarMirror:
    """
    Assinante de `AppointmentBookedEvent`: exporta a cita e grava o id externo.
    Falhas sobem para o EventDispatcher, que só registra: a cita local vale.
    """

    def __init__(self, exporter: CalendarExporter, appointment_repo: AppointmentRepository):
        self.exporter = exporter
        self.appointment_repo = appointment_repo

    def __call__(self, event: AppointmentBookedEvent) -> None:
        if not event.export_to_calendar:
            return
        appt = self.appointment_repo.find_by_id(str(event.clinic_id), str(event.appointment_id))
        if appt is None:
            return
        try:
            external_id = self.exporter.export_appointment(appt, str(event.clinic_id))
        except ExternalServiceError:
            logger.error("calendar.export_failed", appointment_id=str(appt.id), exc_info=True)
            raise
        if external_id and external_id != appt.external_event_id:
            self.appointment_repo.set_external_event_id(str(event.clinic_id), str(appt.id), external_id)
        logger.info("calendar.exported", appointment_id=str(appt.id), external_event_id=external_id)
