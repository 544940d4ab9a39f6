"""
URL configuration for the Growth Flow Automations site backend.

Static pages, the JSON API, and a final catch-all that serves public
assets or answers with the JSON 404.
"""
from django.urls import path, include, re_path

from core import views

urlpatterns = [
    path('', views.landing_page, name='landing'),
    path('admin', views.admin_page, name='admin-dashboard'),
    path('api/health', views.health_check, name='health'),
    path('api/', include('contact.urls')),  # Contact form + admin listing/analytics
    re_path(r'^(?P<path>.+)$', views.public_asset, name='public-asset'),
]
