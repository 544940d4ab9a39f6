"""
Site views: static pages, public assets, health check and the JSON 404
for unmatched routes.
"""
import time

from django.conf import settings
from django.core.exceptions import SuspiciousFileOperation
from django.http import FileResponse, Http404, JsonResponse
from django.utils import timezone
from django.views.static import serve
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from core import PROCESS_STARTED_AT


def _page(request, filename):
    if request.method not in ('GET', 'HEAD'):
        return endpoint_not_found(request)
    return FileResponse(
        open(settings.WEB_ROOT / filename, 'rb'),
        content_type='text/html; charset=utf-8',
    )


def landing_page(request):
    return _page(request, 'index.html')


def admin_page(request):
    return _page(request, 'admin.html')


@api_view(['GET'])
@permission_classes([AllowAny])
def health_check(request):
    """
    GET /api/health

    Always succeeds: status, current time and process uptime in seconds.
    """
    return Response({
        'status': 'OK',
        'timestamp': timezone.now().isoformat().replace('+00:00', 'Z'),
        'uptime': round(time.monotonic() - PROCESS_STARTED_AT, 3),
    })


def endpoint_not_found(request, *args, **kwargs):
    return JsonResponse(
        {'success': False, 'message': 'Endpoint not found'},
        status=404,
    )


def public_asset(request, path):
    """
    Serve a file from the public directory, or the JSON 404 when the path
    matches neither a route nor a file.
    """
    if request.method not in ('GET', 'HEAD'):
        return endpoint_not_found(request)
    try:
        return serve(request, path, document_root=settings.PUBLIC_ROOT)
    except (Http404, SuspiciousFileOperation):
        return endpoint_not_found(request)
