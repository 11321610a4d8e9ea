"""
Views for the location report endpoint.
"""
import logging

from django.utils import timezone
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response

from contracts.models import ObjectLocation
from ..services import ContentRepository
from .serializers import LocationReportSerializer

logger = logging.getLogger(__name__)


class LocationReportView(APIView):
    """
    GET /api/stats/locations/

    Returns how many objects (and bytes) live in each location.
    """

    def get(self, request):
        """Get the location report."""
        try:
            report = self._build_report()
            serializer = LocationReportSerializer(report)
            return Response(serializer.data)
        except Exception as e:
            logger.error(f"Failed to build location report: {str(e)}", exc_info=True)
            return Response(
                {'error': f'Failed to build location report: {str(e)}'},
                status=status.HTTP_500_INTERNAL_SERVER_ERROR
            )

    def _build_report(self):
        """Aggregate per-location counts from the repository."""
        locations = ContentRepository().location_summary()

        total_objects = sum(row['count'] for row in locations)
        total_size_bytes = sum(row['size_bytes'] for row in locations)

        # Bytes with a verified remote copy
        remote_names = {ObjectLocation.DUPLICATED.name, ObjectLocation.REMOTE_ONLY.name}
        remote_size_bytes = sum(
            row['size_bytes'] for row in locations if row['location'] in remote_names
        )

        if total_size_bytes > 0:
            offloaded_percent = round((remote_size_bytes / total_size_bytes) * 100, 2)
        else:
            offloaded_percent = 0.0

        return {
            'locations': locations,
            'total_objects': total_objects,
            'total_size_bytes': total_size_bytes,
            'remote_size_bytes': remote_size_bytes,
            'offloaded_percent': offloaded_percent,
            'timestamp': timezone.now(),
        }
