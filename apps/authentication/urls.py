"""
Authentication URLs

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from django.urls import path
from . import views

urlpatterns = [
    # Authentication
    path('login/', views.login, name='login'),
    path('login/pin-status/', views.login_pin_status, name='login_pin_status'),
    path('logout/', views.logout, name='logout'),
    path('token/refresh/', views.TokenRefreshView.as_view(), name='token_refresh'),

    # Login PIN approval
    path('login-pins/', views.login_pin_list, name='login_pin_list'),
    path('login-pins/<uuid:pin_id>/approve/', views.decide_login_pin, {'decision': 'approve'}, name='approve_login_pin'),
    path('login-pins/<uuid:pin_id>/reject/', views.decide_login_pin, {'decision': 'reject'}, name='reject_login_pin'),
    path('users/<uuid:user_id>/login-pins/latest/', views.latest_login_pin, name='latest_login_pin'),

    # User profile
    path('me/', views.me, name='me'),
    path('profile/update/', views.update_profile, name='update_profile'),
    path('profile/avatar/', views.upload_avatar, name='upload_avatar'),
    path('change-password/', views.change_password, name='change_password'),

    # Employee management
    path('employees/', views.employee_list_create, name='employee_list_create'),
    path('employees/archived/', views.archived_users, name='archived_users'),
    path('employees/<uuid:user_id>/', views.employee_detail, name='employee_detail'),
]
