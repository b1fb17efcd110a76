import uuid

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("paywall", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="PlaybackSession",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier for this record",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                (
                    "started_at",
                    models.DateTimeField(
                        default=django.utils.timezone.now,
                        help_text="When the session was opened",
                    ),
                ),
                (
                    "ended_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="When the session was closed (NULL while open)",
                        null=True,
                    ),
                ),
                (
                    "total_watch_ms",
                    models.PositiveBigIntegerField(
                        default=0, help_text="Time spent playing, in milliseconds"
                    ),
                ),
                (
                    "total_buffer_ms",
                    models.PositiveBigIntegerField(
                        default=0, help_text="Time spent buffering, in milliseconds"
                    ),
                ),
                (
                    "buffer_events",
                    models.PositiveIntegerField(
                        default=0, help_text="Number of buffering stalls"
                    ),
                ),
                (
                    "fatal_errors",
                    models.PositiveIntegerField(
                        default=0, help_text="Number of unrecoverable player errors"
                    ),
                ),
                (
                    "startup_latency_ms",
                    models.IntegerField(
                        blank=True,
                        help_text="Session start to first play, in milliseconds",
                        null=True,
                    ),
                ),
                (
                    "entitlement",
                    models.ForeignKey(
                        help_text="Entitlement this session plays under",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="playback_sessions",
                        to="paywall.entitlement",
                    ),
                ),
            ],
            options={
                "verbose_name": "Playback Session",
                "verbose_name_plural": "Playback Sessions",
                "ordering": ["-started_at"],
                "indexes": [
                    models.Index(
                        fields=["entitlement", "started_at"],
                        name="session_entitlement_idx",
                    ),
                ],
            },
        ),
    ]
