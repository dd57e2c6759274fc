from rest_framework import serializers

from triage.models import EscalationReason, OverrideRationale


class ValidateSerializer(serializers.Serializer):
    esi = serializers.IntegerField(min_value=1, max_value=5)
    rationale = serializers.ChoiceField(choices=OverrideRationale.choices, required=False, allow_null=True)
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True)


class AssignSerializer(serializers.Serializer):
    assigneeId = serializers.IntegerField(min_value=1)
    zone = serializers.CharField(max_length=32, required=False, allow_blank=True)


class EscalateSerializer(serializers.Serializer):
    reason = serializers.ChoiceField(choices=EscalationReason.choices, default=EscalationReason.MANUAL)
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True)
    toUserId = serializers.IntegerField(min_value=1, required=False)


class NotesSerializer(serializers.Serializer):
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True)


class OrdersSerializer(serializers.Serializer):
    orders = serializers.ListField(child=serializers.CharField(max_length=200), allow_empty=True)


class QueueQuerySerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=['all', 'waiting', 'in_triage', 'validated'], default='all')
    q = serializers.CharField(max_length=64, required=False, allow_blank=True)


class BoardQuerySerializer(serializers.Serializer):
    esi = serializers.IntegerField(min_value=1, max_value=5, required=False)
    q = serializers.CharField(max_length=64, required=False, allow_blank=True)
