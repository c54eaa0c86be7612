"""
URL configuration for the cleaning operations API.
"""
from django.contrib import admin
from django.urls import path, include
from django.http import JsonResponse


def health_check(request):
    """Health check endpoint for container orchestration."""
    return JsonResponse({'status': 'healthy', 'service': 'cleaning-ops-api'})


urlpatterns = [
    path('admin/', admin.site.urls),
    path('health/', health_check, name='health-check'),
    path('api/', include('scheduling.urls')),
    path('api/', include('invoicing.urls')),
    path('api/', include('inventory.urls')),
]
