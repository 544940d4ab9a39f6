"""
Contact Management Permissions

Access control for the read-only admin endpoints.
"""
import hmac

from django.conf import settings
from rest_framework import permissions


def get_admin_token():
    return (getattr(settings, 'ADMIN_API_TOKEN', '') or '').strip()


class HasAdminAccess(permissions.BasePermission):
    """
    Permission for the submission listing and analytics endpoints.

    When ``ADMIN_API_TOKEN`` is configured the request must present it,
    either as ``Authorization: Bearer <token>`` or as ``X-Admin-Token``.
    With no token configured the endpoints are open.
    """

    message = 'Admin access token required.'

    def has_permission(self, request, view):
        """Check the presented token against the configured one."""
        expected = get_admin_token()
        if not expected:
            return True

        presented = request.META.get('HTTP_X_ADMIN_TOKEN', '')
        auth_header = request.META.get('HTTP_AUTHORIZATION', '')
        if not presented and auth_header.startswith('Bearer '):
            presented = auth_header[len('Bearer '):]

        return hmac.compare_digest(presented.strip().encode(), expected.encode())
