"""Payment repository interface."""

from __future__ import annotations

from abc import abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING, List, Optional
from uuid import UUID

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.payments.instruments import PaymentInstrument
    from modules.payments.models import Payment


class IPaymentRepository(IRepository["Payment"]):
    @abstractmethod
    def create_for_order(self, order_id: UUID, instrument: PaymentInstrument) -> Payment:
        """Persist a pending payment carrying *instrument*."""

    @abstractmethod
    def get_for_order(self, order_id: UUID, lock: bool = False) -> Optional[Payment]:
        """Return the order's payment, optionally row-locked."""

    @abstractmethod
    def get_by_provider_payment_id(self, provider_payment_id: str) -> Optional[Payment]:
        """Look a card payment up by the provider's intent id."""

    @abstractmethod
    def expired_pending_pix_order_ids(self, now: datetime) -> List[UUID]:
        """Order ids whose pending PIX payment expired before *now*."""
