# apps/core/permissions.py
"""
Centralized permission classes for the entire application.
"""
from rest_framework import permissions


class IsAdmin(permissions.BasePermission):
    """
    Permission class for admin-only access.
    Grants access to superusers and users with ADMIN role.
    """
    message = "Apenas administradores podem executar esta ação."

    def has_permission(self, request, view):
        return bool(
            request.user
            and request.user.is_authenticated
            and (request.user.is_superuser or request.user.role == 'ADMIN')
        )


class IsAdminOrAssistant(permissions.BasePermission):
    """
    Permission for admin or assistant roles.
    Client login accounts never reach the back office.
    """
    message = "Apenas administradores ou assistentes podem executar esta ação."

    def has_permission(self, request, view):
        return bool(
            request.user
            and request.user.is_authenticated
            and (request.user.is_superuser or request.user.role in ['ADMIN', 'ASSISTANT'])
        )
