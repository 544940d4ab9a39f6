"""
REST framework exception handler.

Renders DRF-level errors (malformed body, method not allowed, permission
denied) in the site's ``{success, message}`` shape.
"""
from rest_framework.views import exception_handler


def _first_message(detail):
    if isinstance(detail, dict):
        return _first_message(next(iter(detail.values()), ''))
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ''
    return str(detail)


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is None:
        # Not an API exception; UnhandledErrorMiddleware answers with a 500.
        return None

    response.data = {'success': False, 'message': _first_message(response.data)}
    return response
