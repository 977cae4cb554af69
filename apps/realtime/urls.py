"""
Realtime URLs

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from django.urls import path
from . import views

app_name = 'realtime'

urlpatterns = [
    path('tasks/', views.task_stream, name='task_stream'),
]
