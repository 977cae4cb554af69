"""
Locations URLs

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from django.urls import path
from . import views

app_name = 'locations'

urlpatterns = [
    # Geofences
    path('geofences/', views.geofence_list_create, name='geofence_list_create'),
    path('geofences/<uuid:geofence_id>/', views.geofence_detail, name='geofence_detail'),
    path('geofences/<uuid:geofence_id>/check/', views.geofence_check, name='geofence_check'),

    # Task locations and attendance
    path('tasks/<uuid:task_id>/', views.task_locations, name='task_locations'),
    path('tasks/<uuid:task_id>/check-in/', views.task_check_in, name='task_check_in'),
    path('tasks/<uuid:task_id>/check-out/', views.task_check_out, name='task_check_out'),
    path('tasks/<uuid:task_id>/events/', views.task_location_events, name='task_location_events'),
]
