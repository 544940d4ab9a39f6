"""
Rate Limiting Utilities

Per-client request caps applied in front of the API:
- a general cap on every request (middleware)
- a stricter cap on contact form submissions (view decorator)

Counters live in the Django cache using fixed windows.
"""
import ipaddress
import logging
import time
from functools import wraps

from django.conf import settings
from django.core.cache import cache
from django.http import JsonResponse
from rest_framework import status

logger = logging.getLogger(__name__)

GENERAL_LIMIT_MESSAGE = 'Too many requests from this IP, please try again later.'
CONTACT_LIMIT_MESSAGE = 'Too many contact form submissions, please try again later.'


def _parse_ip(value):
    try:
        return str(ipaddress.ip_address(value.strip()))
    except (AttributeError, ValueError):
        return None


def get_client_ip(request):
    """
    Get client IP address from request.

    ``X-Forwarded-For`` is only honoured when ``TRUST_PROXY_HEADERS`` is on.
    Returns ``None`` when no valid address is available.
    """
    if getattr(settings, 'TRUST_PROXY_HEADERS', False):
        x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
        if x_forwarded_for:
            ip = _parse_ip(x_forwarded_for.split(',')[0])
            if ip:
                return ip
    return _parse_ip(request.META.get('REMOTE_ADDR', ''))


def check_rate_limit(scope, identifier, max_count, window_seconds):
    """
    Count one hit for identifier and check it against the cap.

    Args:
        scope: name of the limit ('general', 'contact')
        identifier: client identifier, usually the IP address
        max_count: maximum allowed hits per window
        window_seconds: window length in seconds

    Returns:
        tuple: (is_allowed, retry_after_seconds)
    """
    now = time.time()
    window = int(now // window_seconds)
    key = f'ratelimit:{scope}:{identifier}:{window}'

    # add() is a no-op when the key exists, so concurrent first hits share one counter.
    cache.add(key, 0, timeout=window_seconds)
    try:
        count = cache.incr(key)
    except ValueError:
        # Expired between add() and incr().
        cache.set(key, 1, timeout=window_seconds)
        count = 1

    if count > max_count:
        retry_after = int((window + 1) * window_seconds - now) + 1
        return False, retry_after

    return True, 0


def rate_limited_response(message, retry_after):
    return JsonResponse(
        {'success': False, 'message': message},
        status=status.HTTP_429_TOO_MANY_REQUESTS,
        headers={'Retry-After': str(retry_after)},
    )


def rate_limit_contact_form(max_per_hour=None):
    """
    Decorator for rate limiting contact form submissions.

    Every attempt counts, whatever its outcome.

    Args:
        max_per_hour: Maximum submissions per IP per hour; defaults to
            ``CONTACT_FORM_RATE_LIMIT_PER_HOUR``.
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapped_view(self, request, *args, **kwargs):
            limit = max_per_hour or getattr(settings, 'CONTACT_FORM_RATE_LIMIT_PER_HOUR', 5)
            ip = get_client_ip(request) or 'unknown'

            allowed, retry_after = check_rate_limit('contact', ip, limit, 60 * 60)
            if not allowed:
                logger.warning("Contact form rate limit exceeded for %s", ip)
                return rate_limited_response(CONTACT_LIMIT_MESSAGE, retry_after)

            return view_func(self, request, *args, **kwargs)

        return wrapped_view
    return decorator


class GeneralRateLimitMiddleware:
    """
    Middleware enforcing the general per-client request cap.

    Applies to every path before any view runs.
    """

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        limit = getattr(settings, 'GENERAL_RATE_LIMIT_MAX', 100)
        window_seconds = getattr(settings, 'GENERAL_RATE_LIMIT_WINDOW_SECONDS', 15 * 60)
        ip = get_client_ip(request) or 'unknown'

        allowed, retry_after = check_rate_limit('general', ip, limit, window_seconds)
        if not allowed:
            logger.warning("General rate limit exceeded for %s on %s", ip, request.path)
            return rate_limited_response(GENERAL_LIMIT_MESSAGE, retry_after)

        return self.get_response(request)
