"""
Celery configuration for the Django application.

Celery runs the paywall's periodic sweeps:
- Replaying failed Square webhook events
- Resetting webhook events stuck in processing
- Resubmitting refunds Square has not accepted yet

Schedules live in the database (django-celery-beat) and are created by the
paywall data migration. Redis is both broker and result backend.

Usage:
    # Run a sweep immediately:
    from paywall.tasks import retry_unprocessed_refunds

    retry_unprocessed_refunds.delay()

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# Create Celery application instance
# The name should match the Django project name
app = Celery("config")

# Load configuration from Django settings
# All Celery settings should be prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Auto-discover tasks from all registered Django apps
# Celery will look for a tasks.py module in each installed app
app.autodiscover_tasks()
