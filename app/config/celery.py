"""
Celery configuration for the Django application.

Workers run queue drains that are deferred out of the request cycle, and
beat runs the stale-run sweep when it is enabled in the admin
(django-celery-beat DatabaseScheduler).

Redis is both the message broker and result backend. Tasks are
auto-discovered from each installed app's tasks.py.

Usage:
    from ai.tasks import drain_thread_queue

    drain_thread_queue.delay(str(thread.id))
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
