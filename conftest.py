"""
Shared pytest fixtures for the site tests.
"""
import pytest
from django.core.cache import cache
from rest_framework.test import APIClient


@pytest.fixture(autouse=True)
def clear_cache():
    """Clear cache before and after each test so rate limit counters never leak."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def open_admin_endpoints(settings):
    """Admin endpoints are open unless a test configures a token."""
    settings.ADMIN_API_TOKEN = ''


@pytest.fixture
def api_client():
    """API client for making requests."""
    return APIClient()


@pytest.fixture
def contact_data():
    """A submission that passes every validation rule."""
    return {
        'name': 'Jane Doe',
        'email': 'jane@example.com',
        'business': 'E-commerce',
        'revenue': '$10k - $50k',
        'automation': 'Order follow-up emails and weekly inventory reports.',
    }
