# apps/core/mixins.py
"""
Reusable mixins for ViewSets to reduce code duplication.
"""


class AdminWritePermissionMixin:
    """
    Provides permission logic where:
    - Read operations: admins and assistants
    - Destructive operations: Admin only
    """
    admin_only_actions = ['destroy']

    def get_permissions(self):
        from apps.core.permissions import IsAdmin, IsAdminOrAssistant

        if self.action in self.admin_only_actions:
            return [IsAdmin()]
        return [IsAdminOrAssistant()]
