"""
Tasks URL Configuration

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from django.urls import path
from . import views

app_name = 'tasks'

urlpatterns = [
    # Task CRUD
    path('', views.task_list_create, name='task-list-create'),
    path('<uuid:task_id>/', views.task_detail, name='task-detail'),

    # Assignment and Status
    path('<uuid:task_id>/assign/', views.task_assign, name='task-assign'),
    path('<uuid:task_id>/transition/', views.task_transition, name='task-transition'),
    path('<uuid:task_id>/progress/', views.task_progress, name='task-progress'),
    path('<uuid:task_id>/reassign/', views.task_reassign, name='task-reassign'),
    path('<uuid:task_id>/history/', views.task_history, name='task-history'),

    # Proofs
    path('<uuid:task_id>/proofs/', views.task_proofs, name='task-proofs'),
    path('proofs/', views.proof_list, name='proof-list'),
    path('proofs/<uuid:proof_id>/review/', views.proof_review, name='proof-review'),

    # Attachments
    path('<uuid:task_id>/attachments/', views.task_attachments, name='task-attachments'),
    path('attachments/<uuid:attachment_id>/', views.attachment_delete, name='attachment-delete'),

    # Forwarding
    path('forward-overdue/', views.forward_overdue, name='forward-overdue'),
    path('forwarding/stats/', views.forwarding_stats, name='forwarding-stats'),
    path('<uuid:task_id>/move-to-planned/', views.move_to_planned, name='move-to-planned'),
]
