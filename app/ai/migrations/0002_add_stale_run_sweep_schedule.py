"""
Add celery-beat schedule for sweeping stale AI runs.

Creates the periodic task for reap_stale_runs, running every minute.
The task is created disabled: stuck runs are normally recovered by the
next submission to their thread. Enable it in the admin to also recover
threads that receive no further submissions.
"""

from django.db import migrations

TASK_NAME = "Reap Stale AI Runs"


def create_periodic_task(apps, schema_editor):
    """Create the (disabled) periodic task for sweeping stale runs."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=1,
        period="minutes",
    )

    PeriodicTask.objects.get_or_create(
        name=TASK_NAME,
        defaults={
            "task": "ai.tasks.reap_stale_runs",
            "interval": schedule,
            "enabled": False,
            "description": (
                "Fails AI runs stuck in the running state past the staleness "
                "threshold and queues a drain for threads with pending messages."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    """Remove the periodic task on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name=TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("ai", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
