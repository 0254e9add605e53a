from rest_framework.permissions import BasePermission, SAFE_METHODS


class IsStaffOrReadOnly(BasePermission):
    """Anyone may read; writes require an authenticated back-office (staff) user"""

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        user = request.user
        return bool(user and user.is_authenticated and user.is_staff)


class IsStaffOrPublicCreate(BasePermission):
    """Anyone may create (POST); everything else requires a staff user"""

    def has_permission(self, request, view):
        if request.method == 'POST':
            return True
        user = request.user
        return bool(user and user.is_authenticated and user.is_staff)
