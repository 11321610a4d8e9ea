"""
URL configuration for the objectfs offload service.
"""
from django.urls import path, include

urlpatterns = [
    path('api/', include('offload.urls')),
]
