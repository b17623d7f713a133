import socket

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import apps.daemons.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("pipelines", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="DaemonInstance",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                (
                    "daemon_type",
                    models.CharField(
                        help_text="Worker type name the daemon was started with.",
                        max_length=100,
                    ),
                ),
                (
                    "pid",
                    models.PositiveIntegerField(
                        db_index=True,
                        help_text="Process id reported by the daemon through the spawn handshake.",
                    ),
                ),
                (
                    "hostname",
                    models.CharField(
                        db_index=True,
                        default=socket.gethostname,
                        help_text="Host the process runs on; pids are only meaningful per host.",
                        max_length=255,
                    ),
                ),
                (
                    "user",
                    models.CharField(
                        blank=True,
                        default=apps.daemons.models.current_user,
                        help_text="User who launched the daemon.",
                        max_length=150,
                    ),
                ),
                ("running", models.BooleanField(db_index=True, default=True)),
                (
                    "end_reason",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("exited", "Exited"),
                            ("terminated", "Terminated"),
                            ("stale", "Stale claim"),
                        ],
                        default="",
                        max_length=20,
                    ),
                ),
                ("start_time", models.DateTimeField(default=django.utils.timezone.now)),
                ("end_time", models.DateTimeField(blank=True, null=True)),
                (
                    "pipeline",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="daemon_instances",
                        to="pipelines.pipeline",
                    ),
                ),
            ],
            options={
                "ordering": ["-start_time", "-id"],
                "indexes": [
                    models.Index(fields=["running", "pid"], name="daemon_running_pid_idx"),
                    models.Index(fields=["hostname", "running"], name="daemon_host_running_idx"),
                ],
            },
        ),
    ]
