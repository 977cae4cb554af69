"""
Authentication Admin

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User, DeletedUser, LoginPin


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = [
        'email', 'full_name', 'role', 'is_active',
        'is_login_verified', 'created_at'
    ]
    list_filter = ['role', 'is_active', 'is_login_verified', 'created_at']
    search_fields = ['email', 'full_name']
    ordering = ['-created_at']

    fieldsets = (
        ('Personal Information', {
            'fields': ('email', 'full_name', 'phone', 'avatar_url')
        }),
        ('Work Information', {
            'fields': ('role', 'skills')
        }),
        ('Permissions', {
            'fields': ('is_active', 'is_staff', 'is_superuser', 'groups', 'user_permissions')
        }),
        ('Status', {
            'fields': ('is_login_verified',)
        }),
        ('Important Dates', {
            'fields': ('last_login_at', 'created_at', 'updated_at')
        }),
    )

    add_fieldsets = (
        ('Create User', {
            'classes': ('wide',),
            'fields': ('email', 'password1', 'password2', 'full_name', 'role')
        }),
    )

    readonly_fields = ['created_at', 'updated_at', 'last_login_at']


@admin.register(DeletedUser)
class DeletedUserAdmin(admin.ModelAdmin):
    list_display = ['email', 'full_name', 'role', 'deleted_by', 'deleted_at']
    list_filter = ['role', 'deleted_at']
    search_fields = ['email', 'full_name', 'deletion_reason']
    readonly_fields = [f.name for f in DeletedUser._meta.fields]

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False


@admin.register(LoginPin)
class LoginPinAdmin(admin.ModelAdmin):
    list_display = ['user', 'code', 'status', 'created_at', 'expires_at', 'approved_by']
    list_filter = ['status', 'created_at']
    search_fields = ['user__email', 'code']
    readonly_fields = ['created_at', 'approved_at', 'redeemed_at']

    def has_add_permission(self, request):
        return False
