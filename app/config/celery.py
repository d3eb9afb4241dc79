"""
Celery configuration for the identity service.

Celery runs scheduled maintenance (purging stale verification and reset
tokens). Redis is both the message broker and result backend. Tasks are
auto-discovered from all installed Django apps; the periodic schedule lives
in CELERY_BEAT_SCHEDULE in settings.py.

Usage:
    celery -A config worker -l info
    celery -A config beat -l info

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("identity")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Looks for a tasks.py module in each installed app
app.autodiscover_tasks()
