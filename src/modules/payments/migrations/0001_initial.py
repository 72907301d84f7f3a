import django.db.models.deletion
import uuid6
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("orders", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Payment",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid6.uuid7,
                        editable=False,
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "payment_method",
                    models.CharField(
                        choices=[("pix", "PIX"), ("credit_card", "Cartão de crédito")],
                        max_length=20,
                    ),
                ),
                ("amount", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pendente"),
                            ("paid", "Pago"),
                            ("failed", "Falhou"),
                            ("refunded", "Estornado"),
                        ],
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("pix_code", models.TextField(blank=True, default="")),
                ("pix_qr_code", models.TextField(blank=True, default="")),
                (
                    "pix_transaction_id",
                    models.CharField(blank=True, default="", max_length=25),
                ),
                ("expires_at", models.DateTimeField(blank=True, null=True)),
                (
                    "payment_provider",
                    models.CharField(blank=True, default="", max_length=50),
                ),
                (
                    "provider_payment_id",
                    models.CharField(
                        blank=True, db_index=True, default="", max_length=255
                    ),
                ),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                (
                    "order",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payment",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "db_table": "payments",
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(
                        fields=["payment_method", "status", "expires_at"],
                        name="payments_expiry_idx",
                    ),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(amount__gt=0),
                        name="payments_amount_positive",
                    ),
                ],
            },
        ),
    ]
