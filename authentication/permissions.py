from rest_framework import permissions

class IsStudentOrStaff(permissions.BasePermission):
    """Custom permission to allow notification recipients: students and staff."""
    def has_permission(self, request, view):
        return request.user.is_authenticated and request.user.role in ['student', 'staff']
