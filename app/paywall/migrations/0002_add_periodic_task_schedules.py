"""
Add celery-beat schedules for the paywall sweeps.

- Replay failed webhook events every 5 minutes
- Reset webhook events stuck in processing every 30 minutes
- Resubmit refunds the processor has not accepted every 15 minutes
"""

from django.db import migrations

SCHEDULES = [
    {
        "name": "Replay Failed Square Webhooks",
        "task": "paywall.tasks.replay_failed_webhooks",
        "every": 5,
        "description": "Replays failed webhook events that still have retries left.",
    },
    {
        "name": "Reset Stuck Square Webhooks",
        "task": "paywall.tasks.cleanup_stuck_webhooks",
        "every": 30,
        "description": "Marks webhook events stuck in processing as failed for replay.",
    },
    {
        "name": "Retry Unprocessed Refunds",
        "task": "paywall.tasks.retry_unprocessed_refunds",
        "every": 15,
        "description": (
            "Resubmits refunds whose processor call failed or timed out. "
            "Eligibility is not re-evaluated."
        ),
    },
]


def create_periodic_tasks(apps, schema_editor):
    """Create the periodic tasks for the paywall sweeps."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    for entry in SCHEDULES:
        schedule, _ = IntervalSchedule.objects.get_or_create(
            every=entry["every"],
            period="minutes",
        )
        PeriodicTask.objects.get_or_create(
            name=entry["name"],
            defaults={
                "task": entry["task"],
                "interval": schedule,
                "enabled": True,
                "description": entry["description"],
            },
        )


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name__in=[entry["name"] for entry in SCHEDULES],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("paywall", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
