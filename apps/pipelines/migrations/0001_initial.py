from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Pipeline",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                (
                    "submission_type",
                    models.CharField(
                        db_index=True,
                        help_text="Pipeline name used to select it on the command line (e.g., 'MAGE-TAB').",
                        max_length=50,
                        unique=True,
                    ),
                ),
                ("description", models.TextField(blank=True, default="")),
                (
                    "daemon_type",
                    models.CharField(
                        help_text="Name of the checker daemon implementation to run (e.g., 'FileChecker').",
                        max_length=100,
                    ),
                ),
                (
                    "instances_to_start",
                    models.PositiveIntegerField(
                        default=0,
                        help_text="Number of daemons to start when no pipeline is named explicitly.",
                    ),
                ),
                (
                    "polling_interval",
                    models.PositiveIntegerField(
                        default=60,
                        help_text="Seconds the daemon waits between polls for new work.",
                    ),
                ),
                (
                    "checker_threshold",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Comma separated severity levels the checker acts on (e.g., 'WARN, ERROR').",
                        max_length=255,
                    ),
                ),
                (
                    "accession_prefix",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Accession prefix handed to the daemon unchanged (e.g., 'E-MTAB-').",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ["id"],
            },
        ),
    ]
