"""
Role-Based Permissions for the editorial back office.

Maps EditorProfile.role to DRF permission classes.

Roles:
- author: Writes articles, no access to the review back office
- editor: Reviews, publishes and comments
- admin: Editor rights plus acting on articles owned by others
- super_admin: Admin rights plus editing anyone's editorial comments

Usage:
    from apps.core.permissions import IsEditorialAdmin

    class MyView(APIView):
        permission_classes = [IsAuthenticated, IsEditorialAdmin]
"""

import logging

from rest_framework.permissions import BasePermission

from apps.core.models import EditorProfile

logger = logging.getLogger(__name__)

ROLE_LEVELS = {
    'author': 1,
    'editor': 2,
    'admin': 3,
    'super_admin': 4,
}


def get_user_role(user):
    """
    Helper function to get user's editorial role.

    Returns: 'author', 'editor', 'admin', 'super_admin', or None when anonymous.
    """
    if not user or not user.is_authenticated:
        return None

    if user.is_superuser:
        return 'super_admin'

    try:
        return EditorProfile.objects.get(user=user).role
    except EditorProfile.DoesNotExist:
        return 'author'


def has_role(user, required_role):
    """
    Check if user has at least the required role level.

    Role hierarchy: super_admin > admin > editor > author
    """
    user_role = get_user_role(user)
    if not user_role:
        return False

    return ROLE_LEVELS.get(user_role, 0) >= ROLE_LEVELS.get(required_role, 0)


class RolePermission(BasePermission):
    """Base class for role-based permissions."""

    required_role = 'super_admin'

    def has_permission(self, request, view):
        return has_role(request.user, self.required_role)


class IsEditorialAdmin(RolePermission):
    """
    Allow access to the review back office.

    Editors, admins and super admins may submit, review, publish and comment.
    """
    required_role = 'editor'
    message = "Editorial admin access required."


def can_override_ownership(user):
    """Whether the user may act on articles owned by someone else."""
    return has_role(user, 'admin')
