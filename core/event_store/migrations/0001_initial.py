from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "sequence",
                    models.PositiveBigIntegerField(
                        unique=True,
                        help_text="0-based position in the custody event log.",
                    ),
                ),
                (
                    "event_type",
                    models.CharField(
                        max_length=255,
                        help_text="Namespaced event type (e.g. custody.batch.shipped.v1).",
                    ),
                ),
                (
                    "actor_id",
                    models.CharField(
                        max_length=255,
                        help_text="Principal whose accepted command produced this entry.",
                    ),
                ),
                (
                    "correlation_id",
                    models.UUIDField(
                        null=True,
                        blank=True,
                        help_text="Command correlation id; entries of one call share it.",
                    ),
                ),
                ("payload", models.JSONField()),
                (
                    "recorded_at",
                    models.DateTimeField(
                        help_text="Ledger clock time when the entry was appended.",
                    ),
                ),
                ("persisted_at", models.DateTimeField(auto_now_add=True)),
                ("previous_hash", models.CharField(max_length=64)),
                ("entry_hash", models.CharField(max_length=64, unique=True)),
            ],
            options={
                "db_table": "custody_ledger_entry",
                "ordering": ["sequence"],
                "indexes": [
                    models.Index(fields=["event_type"], name="idx_ledger_event_type"),
                    models.Index(fields=["correlation_id"], name="idx_ledger_correlation"),
                ],
            },
        ),
    ]
