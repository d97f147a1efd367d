"""
Role based permission classes.
"""
from rest_framework.permissions import BasePermission

ADMIN_ROLES = {"admin", "super"}
DESK_ROLES = {"reception", "admin", "super"}


class IsAdminRole(BasePermission):
    """Allow access only to users with an administrative role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and getattr(user, "role", None) in ADMIN_ROLES)


class IsReceptionOrAdmin(BasePermission):
    """Front desk staff and administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and getattr(user, "role", None) in DESK_ROLES)


class IsSuper(BasePermission):
    """Only super admin."""
    def has_permission(self, request, view) -> bool:
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and getattr(user, "role", None) == "super")

