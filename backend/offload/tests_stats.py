"""
Unit Tests for the Location Report Endpoint
===========================================
"""

from unittest.mock import patch

from rest_framework import status
from rest_framework.test import APITestCase

from offload.services import ContentRepository
from offload.testutils import OffloadTestCase


class LocationReportViewTests(OffloadTestCase, APITestCase):
    """Tests for GET /api/stats/locations/."""

    url = '/api/stats/locations/'

    def test_empty_report(self):
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_objects'], 0)
        self.assertEqual(response.data['offloaded_percent'], 0.0)
        self.assertEqual(len(response.data['locations']), 3)

    def test_report_counts_locations(self):
        self.create_local_object(b'a' * 50)
        self.create_duplicated_object(b'b' * 30)
        self.create_remote_object(b'c' * 20)

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        locations = {row['location']: row for row in response.data['locations']}
        self.assertEqual(locations['LOCAL_ONLY']['count'], 1)
        self.assertEqual(locations['DUPLICATED']['size_bytes'], 30)
        self.assertEqual(locations['REMOTE_ONLY']['label'], 'Remote only')
        self.assertEqual(response.data['total_objects'], 3)
        self.assertEqual(response.data['total_size_bytes'], 100)
        self.assertEqual(response.data['remote_size_bytes'], 50)
        self.assertEqual(response.data['offloaded_percent'], 50.0)
        self.assertIn('timestamp', response.data)

    def test_report_after_push(self):
        content_object = self.create_local_object(b'd' * 10)
        self.pusher.push([content_object])

        response = self.client.get(self.url)

        self.assertEqual(response.data['offloaded_percent'], 100.0)

    def test_report_error_returns_500(self):
        with patch.object(ContentRepository, 'location_summary', side_effect=RuntimeError('db down')):
            response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertIn('error', response.data)
