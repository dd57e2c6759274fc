from rest_framework import serializers


class HandoffCreateSerializer(serializers.Serializer):
    patientIds = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)
    receiverId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    notes = serializers.CharField(max_length=4000, required=False, allow_blank=True)


class HandoffDraftQuerySerializer(serializers.Serializer):
    patientIds = serializers.CharField(required=False, allow_blank=True)

    def validate_patientIds(self, v):
        try:
            return [int(x) for x in v.split(',') if x.strip()]
        except ValueError:
            raise serializers.ValidationError('patientIds must be a comma separated list of ids.')
