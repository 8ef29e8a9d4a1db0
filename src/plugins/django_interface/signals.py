from django.conf import settings
from django.db.models.signals import pre_save
from django.dispatch import receiver

from lead_pipeline.adapters.utils.phone_utils import normalize_phone

from .models import Appointment, Lead


@receiver(pre_save, sender=Lead)
def normalize_lead_phone_before_save(sender, instance: Lead, **kwargs):
    if not instance.phone:
        return
    norm = normalize_phone(
        instance.phone, settings.CLINIC_PHONE_REGION, settings.CLINIC_PHONE_NATIONAL_DIGITS
    )
    if not norm:
        raise ValueError(f"Telefono invalido: {instance.phone!r}")
    instance.phone = norm


@receiver(pre_save, sender=Appointment)
def normalize_appointment_phone_before_save(sender, instance: Appointment, **kwargs):
    if not instance.lead_phone:
        return
    norm = normalize_phone(
        instance.lead_phone, settings.CLINIC_PHONE_REGION, settings.CLINIC_PHONE_NATIONAL_DIGITS
    )
    # cópia desnormalizada: mantém o valor original se não for normalizável
    if norm:
        instance.lead_phone = norm
