"""Payment method and payment status choices."""

from django.db import models


class PaymentMethod(models.TextChoices):
    PIX = "pix", "PIX"
    CREDIT_CARD = "credit_card", "Cartão de crédito"


class PaymentStatus(models.TextChoices):
    PENDING = "pending", "Pendente"
    PAID = "paid", "Pago"
    FAILED = "failed", "Falhou"
    REFUNDED = "refunded", "Estornado"


STRIPE_PROVIDER_NAME = "stripe"
