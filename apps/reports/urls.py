"""
Reports URLs

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from django.urls import path
from . import views

app_name = 'reports'

urlpatterns = [
    path('', views.report_types_list, name='report-types'),
    path('<str:report_type>/', views.report_generate, name='report-generate'),
]
