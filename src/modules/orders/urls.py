"""Order URL configuration."""

from __future__ import annotations

from django.urls import path
from rest_framework.routers import DefaultRouter

from modules.orders.views import OrderViewSet, TrackingView

router = DefaultRouter(trailing_slash=True)
router.register("orders", OrderViewSet, basename="order")

urlpatterns = [
    path("tracking/<str:code>/", TrackingView.as_view(), name="order-tracking"),
    *router.urls,
]
