from datetime import date

from rest_framework import serializers


class VitalsSerializer(serializers.Serializer):
    heartRate = serializers.IntegerField(source='heart_rate', min_value=20, max_value=300, required=False, allow_null=True)
    systolicBp = serializers.IntegerField(source='systolic_bp', min_value=40, max_value=300, required=False, allow_null=True)
    diastolicBp = serializers.IntegerField(source='diastolic_bp', min_value=20, max_value=200, required=False, allow_null=True)
    respiratoryRate = serializers.IntegerField(source='respiratory_rate', min_value=4, max_value=60, required=False, allow_null=True)
    # Fahrenheit
    temperature = serializers.DecimalField(max_digits=4, decimal_places=1, min_value=80, max_value=115, required=False, allow_null=True)
    oxygenSaturation = serializers.IntegerField(source='oxygen_saturation', min_value=50, max_value=100, required=False, allow_null=True)
    painLevel = serializers.IntegerField(source='pain_level', min_value=0, max_value=10, required=False, allow_null=True)
    recordedAt = serializers.DateTimeField(source='recorded_at', required=False)

    def validate(self, attrs):
        sbp, dbp = attrs.get('systolic_bp'), attrs.get('diastolic_bp')
        if sbp is not None and dbp is not None and dbp >= sbp:
            raise serializers.ValidationError({'diastolicBp': 'Diastolic must be below systolic.'})
        return attrs


class IntakeSerializer(serializers.Serializer):
    mrn = serializers.RegexField(r'^[A-Za-z0-9-]{3,32}$')
    firstName = serializers.CharField(source='first_name', max_length=100)
    lastName = serializers.CharField(source='last_name', max_length=100)
    dateOfBirth = serializers.DateField(source='date_of_birth')
    gender = serializers.ChoiceField(choices=['male', 'female', 'other'])
    chiefComplaint = serializers.CharField(source='chief_complaint', max_length=2000)
    arrivalTime = serializers.DateTimeField(source='arrival_time', required=False)
    allergies = serializers.ListField(child=serializers.CharField(max_length=200), required=False)
    medicalHistory = serializers.ListField(source='medical_history', child=serializers.CharField(max_length=200), required=False)
    medications = serializers.ListField(child=serializers.CharField(max_length=200), required=False)
    fhirReference = serializers.CharField(source='fhir_reference', max_length=255, required=False, allow_blank=True)
    vitals = VitalsSerializer(required=False)

    def validate_dateOfBirth(self, v):
        if v > date.today():
            raise serializers.ValidationError('Date of birth is in the future.')
        return v
