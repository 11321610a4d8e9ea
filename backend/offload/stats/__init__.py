"""
Stats module for the location report endpoint.
"""
from .views import LocationReportView
from .serializers import LocationReportSerializer, LocationSummarySerializer

__all__ = [
    'LocationReportView',
    'LocationReportSerializer',
    'LocationSummarySerializer',
]
