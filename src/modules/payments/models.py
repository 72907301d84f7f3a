"""Payment model: one payment attempt per order.

The row is created inside the order placement transaction together with
the instrument that lets the customer pay it (PIX code or card intent).
Changing the payment method of a pending order rewrites the same row.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from django.db import models
from django.utils import timezone

from modules.core.models import BaseModel
from modules.payments.constants import PaymentMethod, PaymentStatus


class Payment(BaseModel):
    order = models.OneToOneField(
        "orders.Order",
        on_delete=models.CASCADE,
        related_name="payment",
    )
    payment_method = models.CharField(max_length=20, choices=PaymentMethod.choices)
    amount = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
    )

    # PIX
    pix_code = models.TextField(blank=True, default="")
    pix_qr_code = models.TextField(blank=True, default="")
    pix_transaction_id = models.CharField(max_length=25, blank=True, default="")
    expires_at = models.DateTimeField(null=True, blank=True)

    # Card
    payment_provider = models.CharField(max_length=50, blank=True, default="")
    provider_payment_id = models.CharField(
        max_length=255, blank=True, default="", db_index=True
    )

    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "payments"
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["payment_method", "status", "expires_at"],
                name="payments_expiry_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="payments_amount_positive",
            ),
        ]

    @property
    def is_expired(self) -> bool:
        return bool(self.expires_at and self.expires_at <= timezone.now())

    def apply_instrument(self, instrument) -> None:
        """Copy *instrument* onto this row, clearing the other method's fields."""
        self.payment_method = instrument.method
        self.amount = instrument.amount
        self.pix_code = instrument.pix_code or ""
        self.pix_qr_code = instrument.pix_qr_code or ""
        self.pix_transaction_id = instrument.pix_transaction_id or ""
        self.expires_at = instrument.expires_at
        self.payment_provider = instrument.provider or ""
        self.provider_payment_id = instrument.provider_payment_id or ""

    def mark_paid(self, when: Optional[datetime] = None) -> None:
        self.status = PaymentStatus.PAID
        self.paid_at = when or timezone.now()

    def __str__(self) -> str:
        return f"{self.payment_method} {self.amount} [{self.status}]"
