from rest_framework import serializers


class PhysicianSettingsSerializer(serializers.Serializer):
    """camelCase view of ``PhysicianSettings``; every field optional on update."""
    pushAlertsEnabled = serializers.BooleanField(source='push_alerts_enabled', required=False)
    silentRoutingEnabled = serializers.BooleanField(source='silent_routing_enabled', required=False)
    soundAlertsEnabled = serializers.BooleanField(source='sound_alerts_enabled', required=False)
    esi1Timeout = serializers.IntegerField(source='esi1_timeout', min_value=1, max_value=30, required=False)
    esi2Timeout = serializers.IntegerField(source='esi2_timeout', min_value=1, max_value=60, required=False)
    aiDraftingEnabled = serializers.BooleanField(source='ai_drafting_enabled', required=False)
    showConfidenceIndicators = serializers.BooleanField(source='show_confidence_indicators', required=False)
    generateSBARSummaries = serializers.BooleanField(source='generate_sbar_summaries', required=False)
