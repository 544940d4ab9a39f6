"""
Contact App

Handles contact form submissions from the landing page:
- Public submission endpoint with validation, sanitization and rate limiting
- Persistence of submissions in a single SQLite table
- Email notifications (operator notice and auto-reply), best-effort
- Read-only admin listing and analytics
"""
