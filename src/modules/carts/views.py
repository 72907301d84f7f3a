"""Cart API views.

All routes act on the authenticated user's own cart; lines are
addressed by product id.
"""

from __future__ import annotations

from uuid import UUID

from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import ViewSet

from modules.carts.dtos import AddCartItemDTO, UpdateCartItemDTO
from modules.carts.repositories.django_repository import CartDjangoRepository
from modules.carts.serializers import (
    AddCartItemSerializer,
    CartItemSerializer,
    UpdateCartItemSerializer,
)
from modules.carts.services import CartService
from modules.products.repositories.django_repository import ProductDjangoRepository


class CartViewSet(ViewSet):
    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = CartService(
            cart_repository=CartDjangoRepository(),
            product_repository=ProductDjangoRepository(),
        )

    def list(self, request: Request) -> Response:
        """GET /api/v1/cart/"""
        items = self._service.list_items(request.user.id)
        return Response(
            {
                "items": CartItemSerializer(items, many=True).data,
                "item_count": sum(item.quantity for item in items),
                "subtotal": str(self._service.subtotal(items)),
            }
        )

    def create(self, request: Request) -> Response:
        """POST /api/v1/cart/"""
        serializer = AddCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item = self._service.add_item(
            AddCartItemDTO(user_id=request.user.id, **serializer.validated_data)
        )
        return Response(CartItemSerializer(item).data, status=status.HTTP_201_CREATED)

    def update(self, request: Request, product_id: UUID) -> Response:
        """PUT /api/v1/cart/{product_id}/"""
        serializer = UpdateCartItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item = self._service.update_quantity(
            UpdateCartItemDTO(
                user_id=request.user.id,
                product_id=product_id,
                quantity=serializer.validated_data["quantity"],
            )
        )
        return Response(CartItemSerializer(item).data)

    def destroy(self, request: Request, product_id: UUID) -> Response:
        """DELETE /api/v1/cart/{product_id}/"""
        self._service.remove_item(request.user.id, product_id)
        return Response(status=status.HTTP_204_NO_CONTENT)

    def clear(self, request: Request) -> Response:
        """DELETE /api/v1/cart/"""
        removed = self._service.clear(request.user.id)
        return Response({"removed": removed})
