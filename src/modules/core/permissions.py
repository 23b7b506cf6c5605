"""Role checks shared by the admin endpoints."""

from __future__ import annotations

from rest_framework.permissions import BasePermission


def is_admin(user) -> bool:
    return bool(user and user.is_authenticated and user.is_staff)


class IsAdmin(BasePermission):
    """Grants access to staff users only."""

    message = "Admin access required."

    def has_permission(self, request, view) -> bool:
        return is_admin(request.user)
