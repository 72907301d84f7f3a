"""Payment instrument generators.

One generator per ``PaymentMethod``; the order service asks the registry
for the generator matching the requested method and never branches on
the method itself.

- ``PixInstrumentGenerator``: static BR Code + QR image, expires after
  ``expiration_minutes``.
- ``CardInstrumentGenerator``: payment intent created through an
  ``IPaymentProvider``; the client secret is handed to the storefront.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Dict, Optional
from uuid import UUID

import structlog
from django.utils import timezone

from modules.payments.constants import PaymentMethod
from modules.payments.exceptions import PaymentProviderError, UnsupportedPaymentMethod
from modules.payments.pix import encode_pix, generate_transaction_id, normalize_amount
from modules.payments.providers import IPaymentProvider

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class InstrumentRequest:
    order_id: UUID
    order_number: str
    amount: Decimal


@dataclass(frozen=True)
class PaymentInstrument:
    """What the customer needs to pay, plus what the Payment row stores.

    PIX instruments fill the ``pix_*`` fields and ``expires_at``; card
    instruments fill ``provider``, ``provider_payment_id`` and
    ``client_secret``.
    """

    method: str
    amount: Decimal
    pix_code: Optional[str] = None
    pix_qr_code: Optional[str] = None
    pix_transaction_id: Optional[str] = None
    expires_at: Optional[datetime] = None
    provider: Optional[str] = None
    provider_payment_id: Optional[str] = None
    client_secret: Optional[str] = field(default=None, repr=False)


class IPaymentInstrumentGenerator(ABC):
    method: str

    @abstractmethod
    def generate(self, request: InstrumentRequest) -> PaymentInstrument:
        """Produce the instrument for ``request.amount``."""


class PixInstrumentGenerator(IPaymentInstrumentGenerator):
    method = PaymentMethod.PIX

    def __init__(
        self,
        pix_key: str,
        merchant_name: str,
        merchant_city: str,
        expiration_minutes: int = 30,
        transaction_id_factory: Callable[[], str] = generate_transaction_id,
    ) -> None:
        self._pix_key = pix_key
        self._merchant_name = merchant_name
        self._merchant_city = merchant_city
        self._expiration = timedelta(minutes=expiration_minutes)
        self._transaction_id_factory = transaction_id_factory

    def generate(self, request: InstrumentRequest) -> PaymentInstrument:
        transaction_id = self._transaction_id_factory()
        pix = encode_pix(
            key=self._pix_key,
            payee_name=self._merchant_name,
            city=self._merchant_city,
            amount=request.amount,
            transaction_id=transaction_id,
            message=f"Pedido {request.order_number}",
        )
        logger.info(
            "payment.pix.generated",
            order_id=str(request.order_id),
            transaction_id=transaction_id,
        )
        return PaymentInstrument(
            method=self.method,
            amount=normalize_amount(request.amount),
            pix_code=pix.payload,
            pix_qr_code=pix.qr_data_uri,
            pix_transaction_id=transaction_id,
            expires_at=timezone.now() + self._expiration,
        )


class CardInstrumentGenerator(IPaymentInstrumentGenerator):
    method = PaymentMethod.CREDIT_CARD

    def __init__(self, provider: IPaymentProvider, currency: str = "brl") -> None:
        self._provider = provider
        self._currency = currency

    def generate(self, request: InstrumentRequest) -> PaymentInstrument:
        amount = request.amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
        if amount <= 0:
            raise PaymentProviderError(
                "invalid_amount", f"Card amount must be positive, got {amount}."
            )
        result = self._provider.create_intent(
            amount_minor_units=int(amount * 100),
            currency=self._currency,
            metadata={
                "order_id": str(request.order_id),
                "order_number": request.order_number,
            },
            idempotency_key=f"order-{request.order_id}-{request.amount}",
        )
        return PaymentInstrument(
            method=self.method,
            amount=amount,
            provider=self._provider.name,
            provider_payment_id=result.intent_id,
            client_secret=result.client_secret,
        )


class PaymentInstrumentRegistry:
    """Maps each ``PaymentMethod`` to its generator."""

    def __init__(self) -> None:
        self._generators: Dict[str, IPaymentInstrumentGenerator] = {}

    def register(self, generator: IPaymentInstrumentGenerator) -> None:
        self._generators[str(generator.method)] = generator

    def for_method(self, method: str) -> IPaymentInstrumentGenerator:
        try:
            return self._generators[str(method)]
        except KeyError:
            raise UnsupportedPaymentMethod(str(method)) from None

    def generate(self, method: str, request: InstrumentRequest) -> PaymentInstrument:
        return self.for_method(method).generate(request)

    @property
    def methods(self) -> list[str]:
        return sorted(self._generators)
