from django.urls import path, include

urlpatterns = [
    path('stats/', include('offload.stats.urls')),
]
