from rest_framework import serializers

from triage.models import AuditAction


class AuditQuerySerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=AuditAction.choices, required=False)
    patientId = serializers.IntegerField(min_value=1, required=False)
    caseId = serializers.IntegerField(min_value=1, required=False)
    start = serializers.DateTimeField(required=False)
    end = serializers.DateTimeField(required=False)
    page = serializers.IntegerField(min_value=1, default=1)
    pageSize = serializers.IntegerField(min_value=1, max_value=200, default=20)

    def validate(self, attrs):
        if attrs.get('start') and attrs.get('end') and attrs['start'] > attrs['end']:
            raise serializers.ValidationError({'end': 'End must not be before start.'})
        return attrs
