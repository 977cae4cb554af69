"""
Meetings URLs

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from django.urls import path
from . import views

app_name = 'meetings'

urlpatterns = [
    path('', views.meeting_create, name='meeting_create'),
    path('inbox/', views.meeting_inbox, name='meeting_inbox'),
    path('<uuid:meeting_id>/accept/', views.meeting_accept, name='meeting_accept'),
    path('<uuid:meeting_id>/reject/', views.meeting_reject, name='meeting_reject'),
    path('<uuid:meeting_id>/cancel/', views.meeting_cancel, name='meeting_cancel'),
    path('<uuid:meeting_id>/share-link/', views.meeting_share_link, name='meeting_share_link'),
    path('<uuid:meeting_id>/events/', views.meeting_events, name='meeting_events'),
]
