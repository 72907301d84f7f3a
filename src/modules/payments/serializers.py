"""Payment DRF serializers."""

from __future__ import annotations

from rest_framework import serializers

from modules.payments.models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = [
            "id",
            "payment_method",
            "amount",
            "status",
            "pix_code",
            "pix_qr_code",
            "pix_transaction_id",
            "expires_at",
            "payment_provider",
            "provider_payment_id",
            "paid_at",
        ]
        read_only_fields = fields


class PaymentInstrumentSerializer(serializers.Serializer):
    """Renders a freshly generated ``PaymentInstrument``.

    ``client_secret`` is only ever returned here, to the customer who
    placed the order; it is not stored on the Payment row.
    """

    method = serializers.CharField()
    amount = serializers.DecimalField(max_digits=10, decimal_places=2)
    pix_code = serializers.CharField(allow_null=True)
    pix_qr_code = serializers.CharField(allow_null=True)
    pix_transaction_id = serializers.CharField(allow_null=True)
    expires_at = serializers.DateTimeField(allow_null=True)
    provider = serializers.CharField(allow_null=True)
    provider_payment_id = serializers.CharField(allow_null=True)
    client_secret = serializers.CharField(allow_null=True)
