"""Django ORM implementation of the Payment repository."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from django.core.exceptions import ValidationError

from modules.payments.constants import PaymentMethod, PaymentStatus
from modules.payments.instruments import PaymentInstrument
from modules.payments.models import Payment
from modules.payments.repositories.interfaces import IPaymentRepository

logger = structlog.get_logger(__name__)


class PaymentDjangoRepository(IPaymentRepository):
    def get_by_id(self, id: str) -> Optional[Payment]:
        try:
            return Payment.objects.filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def list(self, filters: Optional[Dict[str, Any]] = None) -> List[Payment]:
        queryset = Payment.objects.all()
        if filters:
            queryset = queryset.filter(**filters)
        return list(queryset)

    def save(self, entity: Payment) -> Payment:
        entity.save()
        return entity

    def create_for_order(self, order_id: UUID, instrument: PaymentInstrument) -> Payment:
        payment = Payment(order_id=order_id, status=PaymentStatus.PENDING)
        payment.apply_instrument(instrument)
        payment.save()
        logger.info(
            "payment.created",
            payment_id=str(payment.id),
            order_id=str(order_id),
            method=payment.payment_method,
        )
        return payment

    def get_for_order(self, order_id: UUID, lock: bool = False) -> Optional[Payment]:
        queryset = Payment.objects.filter(order_id=order_id)
        if lock:
            queryset = queryset.select_for_update()
        return queryset.first()

    def get_by_provider_payment_id(self, provider_payment_id: str) -> Optional[Payment]:
        if not provider_payment_id:
            return None
        return Payment.objects.filter(provider_payment_id=provider_payment_id).first()

    def expired_pending_pix_order_ids(self, now: datetime) -> List[UUID]:
        return list(
            Payment.objects.filter(
                payment_method=PaymentMethod.PIX,
                status=PaymentStatus.PENDING,
                expires_at__lte=now,
            )
            .order_by("expires_at")
            .values_list("order_id", flat=True)
        )
