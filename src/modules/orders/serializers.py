"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).  Business
logic lives in the Service Layer, which receives Pydantic DTOs from
``dtos.py``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from django.core.exceptions import ObjectDoesNotExist
from rest_framework import serializers

from modules.orders.constants import OrderStatus
from modules.orders.models import (
    Order,
    OrderItem,
    OrderStatusHistory,
    OrderTrackingEvent,
)
from modules.payments.constants import PaymentMethod
from modules.payments.serializers import PaymentInstrumentSerializer, PaymentSerializer

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class ShippingAddressSerializer(serializers.Serializer):
    cep = serializers.CharField(max_length=9)
    logradouro = serializers.CharField(max_length=255)
    numero = serializers.CharField(max_length=20, required=False, allow_blank=True)
    complemento = serializers.CharField(
        max_length=255, required=False, allow_blank=True
    )
    bairro = serializers.CharField(max_length=255)
    localidade = serializers.CharField(max_length=255)
    uf = serializers.CharField(min_length=2, max_length=2)
    estado = serializers.CharField(max_length=100, required=False, allow_blank=True)
    ddd = serializers.CharField(max_length=3, required=False, allow_blank=True)

    def validate_cep(self, value: str) -> str:
        digits = value.replace("-", "").replace(".", "").strip()
        if len(digits) != 8 or not digits.isdigit():
            raise serializers.ValidationError("CEP must have 8 digits.")
        return digits


class PlaceOrderSerializer(serializers.Serializer):
    """Validates the checkout payload; the items come from the cart."""

    payment_method = serializers.ChoiceField(choices=PaymentMethod.choices)
    shipping_address = ShippingAddressSerializer()
    shipping_cost = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False
    )
    notes = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=2000
    )

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        unknown = set(self.initial_data) - set(self.fields)
        if unknown:
            raise serializers.ValidationError(
                {field: "Unknown field." for field in sorted(unknown)}
            )
        return attrs


class UpdateOrderSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(
        choices=PaymentMethod.choices, required=False
    )
    notes = serializers.CharField(required=False, allow_blank=True, max_length=2000)

    def validate(self, attrs: Dict[str, Any]) -> Dict[str, Any]:
        if not attrs:
            raise serializers.ValidationError("Provide payment_method or notes.")
        return attrs


class AdvanceStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(
        choices=[
            OrderStatus.PROCESSING,
            OrderStatus.SHIPPED,
            OrderStatus.DELIVERED,
        ]
    )
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class CancelOrderSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class AddTrackingEventSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=100)
    description = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=2000
    )
    location = serializers.CharField(
        required=False, default="", allow_blank=True, max_length=255
    )
    occurred_at = serializers.DateTimeField(required=False, allow_null=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items with product snapshot."""

    product_name = serializers.CharField(source="product.name", read_only=True)
    product_sku = serializers.CharField(source="product.sku", read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "product_id",
            "product_name",
            "product_sku",
            "quantity",
            "unit_price",
            "total_price",
        ]
        read_only_fields = fields


class TrackingEventSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderTrackingEvent
        fields = ["id", "status", "description", "location", "occurred_at"]
        read_only_fields = fields


class StatusHistorySerializer(serializers.ModelSerializer):
    """Read serializer for order status history records."""

    class Meta:
        model = OrderStatusHistory
        fields = [
            "id",
            "old_status",
            "new_status",
            "notes",
            "created_at",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items, payment and history."""

    items = OrderItemSerializer(many=True, read_only=True)
    status_history = StatusHistorySerializer(many=True, read_only=True)
    payment = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "payment_method",
            "payment_status",
            "subtotal",
            "shipping_cost",
            "total",
            "shipping_address",
            "tracking_code",
            "notes",
            "created_at",
            "updated_at",
            "items",
            "payment",
            "status_history",
        ]
        read_only_fields = fields

    def get_payment(self, obj: Order) -> Optional[Dict[str, Any]]:
        try:
            payment = obj.payment
        except ObjectDoesNotExist:
            return None
        return PaymentSerializer(payment).data


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "status",
            "payment_method",
            "payment_status",
            "total",
            "tracking_code",
            "created_at",
        ]
        read_only_fields = fields


class PlacementResultSerializer(serializers.Serializer):
    order_id = serializers.UUIDField()
    order_number = serializers.CharField()
    subtotal = serializers.DecimalField(max_digits=10, decimal_places=2)
    shipping_cost = serializers.DecimalField(max_digits=10, decimal_places=2)
    total = serializers.DecimalField(max_digits=10, decimal_places=2)
    payment_method = serializers.CharField()
    payment = PaymentInstrumentSerializer()


class TrackingSerializer(serializers.ModelSerializer):
    """Public tracking view: timeline and carrier events, no prices or address."""

    timeline = StatusHistorySerializer(source="status_history", many=True, read_only=True)
    events = TrackingEventSerializer(source="tracking_events", many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "order_number",
            "status",
            "tracking_code",
            "created_at",
            "updated_at",
            "timeline",
            "events",
        ]
        read_only_fields = fields
