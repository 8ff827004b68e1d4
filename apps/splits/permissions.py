"""
Custom permission classes for splits app.
"""
from rest_framework.permissions import BasePermission


class IsSplitOwnerOrAdmin(BasePermission):
    """
    Permission to manage a Split: its owner or a marketplace administrator.

    Usage:
        def get_permissions(self):
            if self.action in ['partial_update', 'cancel']:
                return [IsAuthenticated(), IsSplitOwnerOrAdmin()]
            return super().get_permissions()
    """

    message = "Forbidden. Only Split's owner or admin can manage splits."

    def has_object_permission(self, request, view, obj):
        return obj.is_managed_by(request.user)
