# =========================================================
# Serializers de entrada das rotas da equipe.
# Só validam forma; regras de agenda/funil ficam no domínio.
# =========================================================
from rest_framework import serializers


class StageTransitionInputSerializer(serializers.Serializer):
    to_stage_key = serializers.CharField(max_length=64)
    reason       = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class LeadOutcomeInputSerializer(serializers.Serializer):
    to_stage_key           = serializers.CharField(max_length=64)
    # texto livre: o serviço de resultado valida e interpreta o valor
    converted_value_eur    = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    converted_service_name = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    outcome_reason         = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class WhatsappBlockInputSerializer(serializers.Serializer):
    blocked = serializers.BooleanField()
    reason  = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class AppointmentInputSerializer(serializers.Serializer):
    """`start_at`/`end_at` chegam como texto: a validação da grade resolve o fuso."""
    start_at   = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    end_at     = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    lead_id    = serializers.UUIDField(required=False, allow_null=True)
    lead_name  = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    lead_phone = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    title      = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    notes      = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class RescheduleInputSerializer(serializers.Serializer):
    start_at = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    end_at   = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    title    = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    notes    = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class BusyBlockInputSerializer(serializers.Serializer):
    start_at = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    end_at   = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    reason   = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class RangeQuerySerializer(serializers.Serializer):
    start_at = serializers.DateTimeField()
    end_at   = serializers.DateTimeField()

    def validate(self, attrs):
        if attrs["end_at"] <= attrs["start_at"]:
            raise serializers.ValidationError("end_at debe ser posterior a start_at.")
        return attrs
