"""Celery app for the e-mail worker: ``celery -A config worker``."""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("storefront")
app.config_from_object("django.conf:settings", namespace="CELERY")
# Picks up modules/notifications/tasks.py.
app.autodiscover_tasks()
