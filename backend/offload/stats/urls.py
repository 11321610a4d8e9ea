"""
URL configuration for stats endpoints.
"""
from django.urls import path
from .views import LocationReportView

urlpatterns = [
    path('locations/', LocationReportView.as_view(), name='location-report'),
]
