from django.core.exceptions import ValidationError

from lead_pipeline.core.domain.entities.clinic_entity import ClinicEntity
from lead_pipeline.core.domain.repositories.clinic_repository import ClinicRepository
from plugins.django_interface.models import Clinic as ClinicModel


class ClinicRepoImpl(ClinicRepository):
    def find_by_id(self, clinic_id: str) -> ClinicEntity | None:
        try:
            return ClinicEntity.from_model(ClinicModel.objects.get(id=clinic_id))
        except (ClinicModel.DoesNotExist, ValidationError, ValueError):
            return None
