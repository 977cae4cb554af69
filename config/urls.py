"""
FieldPilot URL Configuration

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from django.contrib import admin
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView, SpectacularRedocView

urlpatterns = [
    path('admin/', admin.site.urls),

    # API Documentation
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),

    # API Endpoints
    path('api/v1/auth/', include('apps.authentication.urls')),
    path('api/v1/tasks/', include('apps.tasks.urls')),
    path('api/v1/jobs/', include('apps.jobs.urls')),
    path('api/v1/locations/', include('apps.locations.urls')),
    path('api/v1/meetings/', include('apps.meetings.urls')),
    path('api/v1/realtime/', include('apps.realtime.urls')),
    path('api/v1/reports/', include('apps.reports.urls')),
    path('health/', include('apps.core.urls')),
]

# Serve media files in development
if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
    urlpatterns += static(settings.STATIC_URL, document_root=settings.STATIC_ROOT)
