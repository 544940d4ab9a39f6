"""
Site-wide middleware: security headers and the final catch-all for
unhandled errors.
"""
import logging

from django.conf import settings
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def build_content_security_policy(directives):
    return '; '.join(
        f"{name} {' '.join(sources)}" for name, sources in directives.items()
    )


class SecurityHeadersMiddleware:
    """
    Adds the Content-Security-Policy header built from
    ``CONTENT_SECURITY_POLICY`` to every response that lacks one.
    """

    def __init__(self, get_response):
        self.get_response = get_response
        self.policy = build_content_security_policy(
            getattr(settings, 'CONTENT_SECURITY_POLICY', {})
        )

    def __call__(self, request):
        response = self.get_response(request)
        if self.policy and 'Content-Security-Policy' not in response:
            response['Content-Security-Policy'] = self.policy
        return response


class UnhandledErrorMiddleware:
    """
    Turns any exception escaping a view into a generic JSON 500 so a single
    bad request never takes the process down or leaks a traceback.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        logger.error(
            "Unhandled error on %s %s", request.method, request.path,
            exc_info=(type(exception), exception, exception.__traceback__),
        )
        return JsonResponse(
            {'success': False, 'message': 'Internal server error'},
            status=500,
        )
