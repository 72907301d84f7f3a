"""Cart URL configuration.

The router cannot map ``DELETE`` on the collection, so the two routes
are bound explicitly.
"""

from __future__ import annotations

from django.urls import path

from modules.carts.views import CartViewSet

cart_collection = CartViewSet.as_view(
    {"get": "list", "post": "create", "delete": "clear"}
)
cart_item = CartViewSet.as_view(
    {"put": "update", "patch": "update", "delete": "destroy"}
)

urlpatterns = [
    path("cart/", cart_collection, name="cart"),
    path("cart/<uuid:product_id>/", cart_item, name="cart-item"),
]
