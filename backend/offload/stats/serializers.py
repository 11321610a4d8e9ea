"""
Serializers for the location report endpoint.
"""
from rest_framework import serializers


class LocationSummarySerializer(serializers.Serializer):
    """Object count and size for one location."""
    location = serializers.CharField()
    label = serializers.CharField()
    count = serializers.IntegerField()
    size_bytes = serializers.IntegerField()


class LocationReportSerializer(serializers.Serializer):
    """Serializer for the location report response."""
    locations = LocationSummarySerializer(many=True)
    total_objects = serializers.IntegerField()
    total_size_bytes = serializers.IntegerField()
    remote_size_bytes = serializers.IntegerField()
    offloaded_percent = serializers.FloatField()
    timestamp = serializers.DateTimeField()
