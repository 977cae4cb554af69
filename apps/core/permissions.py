"""
Role Permissions

Copyright (c) 2025 FieldPilot. All rights reserved.
This source code is proprietary and confidential.
"""
from rest_framework import permissions

ADMIN = 'admin'
EMPLOYEE = 'employee'


def has_role(user, *roles):
    return bool(user and user.is_authenticated and user.role in roles)


class IsAdminUser(permissions.BasePermission):
    """Administrators only."""

    def has_permission(self, request, view):
        return has_role(request.user, ADMIN)


class IsEmployeeOrAdmin(permissions.BasePermission):
    """Any signed-in staff member: field employees and administrators."""

    def has_permission(self, request, view):
        return has_role(request.user, ADMIN, EMPLOYEE)


class IsAdminOrReadOnly(permissions.BasePermission):
    """
    Read access for any authenticated user, writes for admins only.
    """

    def has_permission(self, request, view):
        if request.method in permissions.SAFE_METHODS:
            return bool(request.user and request.user.is_authenticated)
        return has_role(request.user, ADMIN)
