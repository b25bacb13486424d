import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="MenuItem",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=200)),
                ("description", models.TextField(blank=True)),
                ("price", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "course",
                    models.CharField(
                        choices=[
                            ("APPETIZER", "Appetizer"),
                            ("SALAD", "Salad"),
                            ("SOUP", "Soup"),
                            ("ENTREE", "Entree"),
                            ("SIDE", "Side"),
                            ("DESSERT", "Dessert"),
                            ("BEVERAGE", "Beverage"),
                        ],
                        default="ENTREE",
                        max_length=20,
                    ),
                ),
                ("is_available", models.BooleanField(default=True)),
                ("is_86d", models.BooleanField(default=False, help_text="Temporarily out of stock")),
                (
                    "preparation_time",
                    models.PositiveIntegerField(blank=True, help_text="Expected preparation time in minutes", null=True),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={"ordering": ["name"]},
        ),
        migrations.CreateModel(
            name="Modifier",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=100)),
                ("price", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("is_available", models.BooleanField(default=True)),
            ],
            options={"ordering": ["name"]},
        ),
    ]
