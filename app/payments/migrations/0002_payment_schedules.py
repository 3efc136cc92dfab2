"""
Add celery-beat schedules for payment background work.

- Reconcile pending card payments against Stripe (every 15 minutes)
- Retry failed or unqueued webhook events (every 5 minutes)
- Reset webhook events stuck in processing (every 30 minutes)
"""

from django.db import migrations

SCHEDULES = [
    {
        "name": "Reconcile Pending Payments",
        "task": "payments.tasks.reconcile_pending_payments",
        "every": 15,
        "description": (
            "Polls Stripe for card payments left pending and confirms "
            "succeeded or canceled payment intents."
        ),
    },
    {
        "name": "Retry Failed Webhooks",
        "task": "payments.tasks.retry_failed_webhooks",
        "every": 5,
        "description": "Re-queues failed or never-queued Stripe webhook events.",
    },
    {
        "name": "Cleanup Stuck Webhooks",
        "task": "payments.tasks.cleanup_stuck_webhooks",
        "every": 30,
        "description": "Resets webhook events stuck in processing so they are retried.",
    },
]


def create_periodic_tasks(apps, schema_editor):
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
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name__in=[entry["name"] for entry in SCHEDULES],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
