"""
Jobs URLs

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from django.urls import path
from . import views

app_name = 'jobs'

urlpatterns = [
    path('', views.job_list_create, name='job_list_create'),
    path('<uuid:job_id>/', views.job_detail, name='job_detail'),
    path('<uuid:job_id>/materials/', views.job_materials, name='job_materials'),
    path('<uuid:job_id>/materials/<uuid:material_id>/', views.job_material_detail, name='job_material_detail'),
]
