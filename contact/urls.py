"""
Contact URL Configuration
"""
from django.urls import path
from .views import (
    ContactFormSubmitView,
    ContactListView,
    ContactAnalyticsView
)

app_name = 'contact'

# Public URLs
public_urlpatterns = [
    path('contact', ContactFormSubmitView.as_view(), name='submit'),
]

# Admin URLs (guarded by HasAdminAccess)
admin_urlpatterns = [
    path('contacts', ContactListView.as_view(), name='list'),
    path('analytics', ContactAnalyticsView.as_view(), name='analytics'),
]

urlpatterns = public_urlpatterns + admin_urlpatterns
