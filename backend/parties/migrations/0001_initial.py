import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Counterparty",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("kind", models.CharField(choices=[("VENDOR", "Vendor"), ("CUSTOMER", "Customer")], max_length=10)),
                ("code", models.CharField(max_length=50)),
                ("name", models.CharField(max_length=255)),
                ("currency", models.CharField(max_length=3)),
                ("credit_term_days", models.PositiveIntegerField(default=0)),
                ("email", models.EmailField(blank=True, default="", max_length=254)),
                ("phone", models.CharField(blank=True, default="", max_length=50)),
                ("address", models.TextField(blank=True, default="")),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="counterparties", to="accounts.company")),
            ],
            options={
                "verbose_name_plural": "Counterparties",
                "ordering": ["kind", "code"],
                "indexes": [
                    models.Index(fields=["company", "kind", "is_active"], name="parties_cp_company_kind_idx"),
                ],
                "constraints": [
                    models.UniqueConstraint(fields=("company", "kind", "code"), name="uniq_counterparty_company_kind_code"),
                ],
            },
        ),
    ]
