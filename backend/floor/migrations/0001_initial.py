import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="FloorPlan",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=100)),
                ("width", models.PositiveIntegerField(default=1200)),
                ("height", models.PositiveIntegerField(default=800)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"ordering": ["name"]},
        ),
        migrations.CreateModel(
            name="Table",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("number", models.CharField(max_length=20)),
                ("capacity", models.PositiveIntegerField()),
                ("min_capacity", models.PositiveIntegerField(default=1)),
                ("x", models.FloatField(default=0)),
                ("y", models.FloatField(default=0)),
                ("width", models.FloatField(default=100)),
                ("height", models.FloatField(default=100)),
                (
                    "shape",
                    models.CharField(
                        choices=[
                            ("SQUARE", "Square"),
                            ("RECTANGLE", "Rectangle"),
                            ("CIRCLE", "Circle"),
                            ("BOOTH", "Booth"),
                        ],
                        default="SQUARE",
                        max_length=20,
                    ),
                ),
                ("section", models.CharField(blank=True, max_length=50, null=True)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("AVAILABLE", "Available"),
                            ("OCCUPIED", "Occupied"),
                            ("RESERVED", "Reserved"),
                            ("DIRTY", "Dirty"),
                            ("CLEANING", "Cleaning"),
                        ],
                        default="AVAILABLE",
                        max_length=20,
                    ),
                ),
                (
                    "sequence",
                    models.PositiveBigIntegerField(
                        default=1, help_text="Per-table event sequence, bumped on every accepted mutation"
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "floor_plan",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="tables", to="floor.floorplan"
                    ),
                ),
            ],
            options={"ordering": ["number"]},
        ),
        migrations.AddConstraint(
            model_name="table",
            constraint=models.UniqueConstraint(
                fields=("floor_plan", "number"), name="unique_table_number_per_floor_plan"
            ),
        ),
        migrations.AddIndex(
            model_name="table",
            index=models.Index(fields=["floor_plan", "status"], name="table_plan_status_idx"),
        ),
    ]
