"""Order API views.

Exposes ``OrderService`` via HTTP using DRF ViewSets.  Domain exceptions
are not caught here: they propagate to the project's exception handler,
which renders the standard error envelope and status code.
"""

from __future__ import annotations

from uuid import UUID

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter
from rest_framework.permissions import AllowAny, IsAdminUser, IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.views import APIView
from rest_framework.viewsets import GenericViewSet

from modules.orders.dependencies import get_order_service
from modules.orders.dtos import (
    AddTrackingEventDTO,
    PlaceOrderDTO,
    ShippingAddressDTO,
    UpdateOrderDTO,
)
from modules.orders.exceptions import OrderNotFound
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    AddTrackingEventSerializer,
    AdvanceStatusSerializer,
    CancelOrderSerializer,
    OrderListSerializer,
    OrderSerializer,
    PlacementResultSerializer,
    PlaceOrderSerializer,
    TrackingEventSerializer,
    TrackingSerializer,
    UpdateOrderSerializer,
)
from modules.payments.serializers import PaymentInstrumentSerializer


def _order_uuid(pk: str | None) -> UUID:
    try:
        return UUID(str(pk))
    except ValueError:
        raise OrderNotFound(f"Invalid order id {pk!r}.") from None


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Does **not** extend ``ModelViewSet``: every write goes through
    ``OrderService``.  Customers only ever see their own orders.
    """

    queryset = Order.objects.none()
    serializer_class = OrderSerializer
    filterset_class = OrderFilter
    ordering_fields = ["created_at", "total", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = get_order_service()

    def get_permissions(self):
        if self.action in {"confirm_payment", "advance_status", "tracking_events"}:
            return [IsAdminUser()]
        return [IsAuthenticated()]

    def get_throttles(self) -> list[BaseThrottle]:
        """Throttling scopes per action."""
        throttle_scope: str | None
        if self.action == "create":
            throttle_scope = "order_placement"
        elif self.action in {"list", "retrieve"}:
            throttle_scope = "order_listing"
        else:
            throttle_scope = None
        self.throttle_scope = throttle_scope
        return super().get_throttles()

    def get_queryset(self):
        return OrderDjangoRepository().queryset({"user_id": self.request.user.id})

    # ------------------------------------------------------------------
    # Place
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/

        Places an order from the caller's cart and returns the payment
        instrument (PIX code + QR image, or card client secret).
        """
        serializer = PlaceOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = self._service.place_order(
            PlaceOrderDTO(
                user_id=request.user.id,
                payment_method=data["payment_method"],
                shipping_address=ShippingAddressDTO(**data["shipping_address"]),
                shipping_cost=data.get("shipping_cost"),
                notes=data.get("notes", ""),
            )
        )
        return Response(
            PlacementResultSerializer(result).data, status=status.HTTP_201_CREATED
        )

    # ------------------------------------------------------------------
    # List / Retrieve
    # ------------------------------------------------------------------

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, payment status/method, date range, total range)
        is handled by ``OrderFilter``; results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(OrderListSerializer(page, many=True).data)
        return Response(OrderListSerializer(queryset, many=True).data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        order = self._service.get_order(str(_order_uuid(pk)), request.user.id)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # Update payment method / notes
    # ------------------------------------------------------------------

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/orders/{pk}/

        Only allowed while the payment is pending.  A new payment method
        returns a fresh instrument.
        """
        serializer = UpdateOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order, instrument = self._service.update_order(
            _order_uuid(pk),
            request.user.id,
            UpdateOrderDTO(**serializer.validated_data),
        )
        return Response(
            {
                "order": OrderSerializer(order).data,
                "payment": (
                    PaymentInstrumentSerializer(instrument).data if instrument else None
                ),
            }
        )

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/

        Cancels one of the caller's pending orders and releases its stock.
        """
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order_id = _order_uuid(pk)
        self._service.get_order(str(order_id), request.user.id)
        order = self._service.cancel_order(
            order_id,
            notes=serializer.validated_data["notes"],
            user_id=request.user.id,
        )
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"], url_path="confirm-payment")
    def confirm_payment(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/confirm-payment/ (staff)"""
        order = self._service.confirm_payment(_order_uuid(pk), user_id=request.user.id)
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"], url_path="status")
    def advance_status(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/status/ (staff)"""
        serializer = AdvanceStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = self._service.advance_status(
            _order_uuid(pk),
            serializer.validated_data["status"],
            notes=serializer.validated_data["notes"],
            user_id=request.user.id,
        )
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["get", "post"], url_path="tracking-events")
    def tracking_events(self, request: Request, pk: str | None = None) -> Response:
        """GET/POST /api/v1/orders/{pk}/tracking-events/ (staff)

        POST records a carrier event (status, description, location and
        optional ``occurred_at``) on a paid order.
        """
        order_id = _order_uuid(pk)
        if request.method == "GET":
            events = self._service.list_tracking_events(order_id)
            return Response(TrackingEventSerializer(events, many=True).data)

        serializer = AddTrackingEventSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        event = self._service.add_tracking_event(
            order_id,
            AddTrackingEventDTO(**serializer.validated_data),
            user_id=request.user.id,
        )
        return Response(
            TrackingEventSerializer(event).data, status=status.HTTP_201_CREATED
        )


class TrackingView(APIView):
    """GET /api/v1/tracking/{code}/: public shipment timeline."""

    permission_classes = [AllowAny]

    def get(self, request: Request, code: str) -> Response:
        order = get_order_service().track(code)
        return Response(TrackingSerializer(order).data)
