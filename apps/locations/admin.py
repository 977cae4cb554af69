"""
Locations Admin Configuration

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from django.contrib import admin
from .models import Geofence, TaskLocation, TaskLocationEvent


@admin.register(Geofence)
class GeofenceAdmin(admin.ModelAdmin):
    list_display = ['name', 'center_latitude', 'center_longitude', 'radius_meters', 'is_active']
    list_filter = ['is_active']
    search_fields = ['name', 'description']


@admin.register(TaskLocation)
class TaskLocationAdmin(admin.ModelAdmin):
    list_display = ['task', 'location_name', 'geofence', 'required_radius_meters', 'arrival_required']


@admin.register(TaskLocationEvent)
class TaskLocationEventAdmin(admin.ModelAdmin):
    list_display = ['task', 'user', 'event_type', 'latitude', 'longitude', 'timestamp']
    list_filter = ['event_type']
    date_hierarchy = 'timestamp'
