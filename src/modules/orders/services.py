"""Order service layer (Use Cases).

Orchestrates order placement, payment updates, cancellation and the carrier
tracking log.  Every write operation is one explicit unit of work
(``transaction.atomic``) owned by this module; repositories only join it.

Placement invariants:
- an order is committed only together with its items, its payment and
  the clearing of the cart; any failure rolls all of them back;
- stock rows are locked in product-id order for the whole placement and
  decremented with a guarded ``UPDATE``, so stock never goes negative;
- ``total == subtotal + shipping_cost`` and the payment amount is the
  total, never the subtotal.
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple
from uuid import UUID

import structlog
from django.conf import settings
from django.db import DatabaseError, transaction

from modules.orders.constants import OrderStatus, PlacementStage
from modules.orders.dtos import PlacementResult
from modules.orders.events import (
    OrderCancelled,
    OrderPaymentConfirmed,
    OrderPaymentFailed,
    OrderPlaced,
    OrderUpdated,
)
from modules.orders.exceptions import (
    AuthenticationRequired,
    InvalidOrderStatus,
    OrderNotFound,
    OrderNotUpdatableError,
    OrderPersistenceError,
    PaymentNotConfirmableError,
)
from modules.orders.pricing import CartLineSnapshot, CartPricingValidator, ShippingPolicy
from modules.payments.constants import PaymentStatus
from modules.payments.instruments import InstrumentRequest

if TYPE_CHECKING:
    from modules.carts.models import CartItem
    from modules.carts.repositories.interfaces import ICartRepository
    from modules.orders.dtos import AddTrackingEventDTO, PlaceOrderDTO, UpdateOrderDTO
    from modules.orders.models import Order, OrderTrackingEvent
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.payments.instruments import PaymentInstrument, PaymentInstrumentRegistry
    from modules.payments.repositories.interfaces import IPaymentRepository
    from modules.products.models import Product
    from modules.products.repositories.interfaces import IProductRepository

logger = structlog.get_logger(__name__)

_CENTS = Decimal("0.01")


def default_shipping_policy() -> ShippingPolicy:
    return ShippingPolicy(
        free_threshold=settings.FREE_SHIPPING_THRESHOLD,
        flat_rate=settings.DEFAULT_SHIPPING_COST,
    )


class OrderService:
    """Application service for Order use-cases.

    Receives repositories and the payment instrument registry via
    constructor injection (DIP); ``modules.orders.dependencies`` wires
    the production instances.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        product_repository: IProductRepository,
        cart_repository: ICartRepository,
        payment_repository: IPaymentRepository,
        instrument_registry: PaymentInstrumentRegistry,
        validator: Optional[CartPricingValidator] = None,
        shipping_policy: Optional[ShippingPolicy] = None,
    ) -> None:
        self._order_repo = order_repository
        self._product_repo = product_repository
        self._cart_repo = cart_repository
        self._payment_repo = payment_repository
        self._registry = instrument_registry
        self._validator = validator or CartPricingValidator()
        self._shipping_policy = shipping_policy or default_shipping_policy()

    # ------------------------------------------------------------------
    # Placement
    # ------------------------------------------------------------------

    def place_order(self, dto: PlaceOrderDTO) -> PlacementResult:
        """Turn the user's cart into a pending order with a payment instrument.

        Raises:
            AuthenticationRequired: no user on the request.
            EmptyCartError: the cart has no lines.
            InactiveProductError: a cart product is inactive or deleted.
            InsufficientStockError: a line asks for more than the stock.
            PixGenerationError, PaymentProviderError, UnsupportedPaymentMethod:
                the instrument could not be produced.
            OrderPersistenceError: the database failed mid-placement.
        """
        if dto.user_id is None:
            raise AuthenticationRequired("Order placement requires a user.")

        log = logger.bind(user_id=dto.user_id, payment_method=str(dto.payment_method))
        stage = self._advance(log, PlacementStage.STARTED)

        try:
            with transaction.atomic():
                lines = self._cart_repo.get_lines(dto.user_id)
                locked = self._product_repo.lock_many(
                    line.product_id for line in lines
                )
                priced = self._validator.validate(
                    [self._snapshot(line, locked.get(line.product_id)) for line in lines]
                )
                stage = self._advance(log, PlacementStage.VALIDATED)

                for line in sorted(priced.lines, key=lambda pl: pl.product_id):
                    self._product_repo.decrement_stock(line.product_id, line.quantity)
                stage = self._advance(log, PlacementStage.STOCK_RESERVED)

                subtotal = priced.subtotal.quantize(_CENTS)
                shipping_cost = self._shipping_cost(dto.shipping_cost, subtotal)
                total = subtotal + shipping_cost

                order = self._order_repo.create(
                    {
                        "user_id": dto.user_id,
                        "payment_method": dto.payment_method,
                        "subtotal": subtotal,
                        "shipping_cost": shipping_cost,
                        "total": total,
                        "shipping_address": dto.shipping_address.snapshot(),
                        "notes": dto.notes,
                        "items": [
                            {
                                "product_id": line.product_id,
                                "quantity": line.quantity,
                                "unit_price": line.unit_price,
                            }
                            for line in priced.lines
                        ],
                    }
                )
                self._order_repo.add_history(
                    order_id=order.id,
                    status=OrderStatus.PENDING,
                    notes="Order placed",
                    user_id=dto.user_id,
                )
                order.add_domain_event(
                    OrderPlaced(
                        aggregate_id=order.id,
                        order_number=order.order_number,
                        total=str(total),
                        payment_method=str(dto.payment_method),
                    )
                )
                self._order_repo.save(order)
                log = log.bind(order_id=str(order.id), order_number=order.order_number)
                stage = self._advance(log, PlacementStage.ORDER_PERSISTED)

                instrument = self._registry.generate(
                    dto.payment_method,
                    InstrumentRequest(
                        order_id=order.id,
                        order_number=order.order_number,
                        amount=total,
                    ),
                )
                self._payment_repo.create_for_order(order.id, instrument)
                stage = self._advance(log, PlacementStage.PAYMENT_CREATED)

                self._cart_repo.delete_for_user(dto.user_id)
                stage = self._advance(log, PlacementStage.CART_CLEARED)
        except DatabaseError as exc:
            log.error(
                "order.placement.rolled_back",
                stage=str(stage),
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise OrderPersistenceError(f"Database error during placement: {exc}") from exc
        except Exception as exc:
            log.warning(
                "order.placement.rolled_back",
                stage=str(stage),
                error_type=type(exc).__name__,
                error=str(exc),
            )
            raise

        self._advance(log, PlacementStage.COMMITTED, total=str(total))
        return PlacementResult(
            order_id=order.id,
            order_number=order.order_number,
            subtotal=subtotal,
            shipping_cost=shipping_cost,
            total=total,
            payment_method=dto.payment_method,
            payment=instrument,
        )

    # ------------------------------------------------------------------
    # Payment updates
    # ------------------------------------------------------------------

    @transaction.atomic
    def update_order(
        self, order_id: UUID, user_id: int, dto: UpdateOrderDTO
    ) -> Tuple[Order, Optional[PaymentInstrument]]:
        """Change the payment method and/or notes of a pending order.

        A new ``payment_method`` regenerates the instrument and replaces
        every field of the previous one.

        Raises:
            OrderNotFound: unknown order or not owned by *user_id*.
            OrderNotUpdatableError: the payment is no longer pending.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if order is None or order.user_id != user_id:
            raise OrderNotFound(f"Order {order_id} not found for user {user_id}.")

        log = logger.bind(order_id=str(order.id), payment_status=order.payment_status)
        if not order.is_payment_pending or order.status != OrderStatus.PENDING:
            log.warning("order.update_rejected", status=order.status)
            raise OrderNotUpdatableError(
                f"Order {order.order_number} has payment status {order.payment_status}."
            )

        instrument = None
        if dto.payment_method is not None:
            instrument = self._registry.generate(
                dto.payment_method,
                InstrumentRequest(
                    order_id=order.id,
                    order_number=order.order_number,
                    amount=order.total,
                ),
            )
            payment = self._payment_repo.get_for_order(order.id, lock=True)
            if payment is None:
                self._payment_repo.create_for_order(order.id, instrument)
            else:
                payment.apply_instrument(instrument)
                self._payment_repo.save(payment)
            order.payment_method = dto.payment_method
            log.info("order.payment_method_changed", payment_method=str(dto.payment_method))

        if dto.notes is not None:
            order.notes = dto.notes

        order.add_domain_event(
            OrderUpdated(aggregate_id=order.id, payment_method=str(order.payment_method))
        )
        self._order_repo.save(order)
        log.info("order.updated")
        return self._order_repo.get_by_id(str(order.id)), instrument

    @transaction.atomic
    def confirm_payment(self, order_id: UUID, user_id: Optional[int] = None) -> Order:
        """Mark the order paid and assign its tracking code.

        Idempotent: confirming an already paid order returns it unchanged,
        with the tracking code it already has.

        Raises:
            OrderNotFound: unknown order.
            PaymentNotConfirmableError: the payment is failed or refunded.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order.id), order_number=order.order_number)
        if order.payment_status == PaymentStatus.PAID:
            log.info("order.payment_already_confirmed", tracking_code=order.tracking_code)
            return self._order_repo.get_by_id(str(order.id))
        if not order.is_payment_pending:
            log.warning("order.payment_not_confirmable", payment_status=order.payment_status)
            raise PaymentNotConfirmableError(
                f"Order {order.order_number} has payment status {order.payment_status}."
            )
        if not order.can_transition_to(OrderStatus.PAID):
            raise InvalidOrderStatus(
                f"Cannot transition from {order.status} to {OrderStatus.PAID}."
            )

        payment = self._payment_repo.get_for_order(order.id, lock=True)
        if payment is not None:
            payment.mark_paid()
            self._payment_repo.save(payment)

        old_status = order.status
        order.status = OrderStatus.PAID
        order.payment_status = PaymentStatus.PAID
        tracking_code = order.assign_tracking_code()
        order.add_domain_event(
            OrderPaymentConfirmed(aggregate_id=order.id, tracking_code=tracking_code)
        )
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            status=OrderStatus.PAID,
            notes="Payment confirmed",
            old_status=old_status,
            user_id=user_id,
        )

        log.info("order.payment_confirmed", tracking_code=tracking_code)
        return self._order_repo.get_by_id(str(order.id))

    @transaction.atomic
    def fail_payment(self, order_id: UUID, reason: str = "") -> Order:
        """Record a payment failure reported by the provider.

        No-op when the payment is already failed.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order.id), order_number=order.order_number)
        if order.payment_status == PaymentStatus.FAILED:
            return order
        if not order.is_payment_pending:
            raise InvalidOrderStatus(
                f"Cannot fail a payment with status {order.payment_status}."
            )

        payment = self._payment_repo.get_for_order(order.id, lock=True)
        if payment is not None:
            payment.status = PaymentStatus.FAILED
            self._payment_repo.save(payment)

        order.payment_status = PaymentStatus.FAILED
        order.add_domain_event(OrderPaymentFailed(aggregate_id=order.id, reason=reason))
        self._order_repo.save(order)
        log.warning("order.payment_failed", reason=reason)
        return order

    # ------------------------------------------------------------------
    # Status management
    # ------------------------------------------------------------------

    @transaction.atomic
    def cancel_order(
        self, order_id: UUID, notes: str = "", user_id: Optional[int] = None
    ) -> Order:
        """Cancel a pending order and release its reserved stock.

        Locks the order row **first** so concurrent cancellations cannot
        release the stock twice.

        Raises:
            OrderNotFound: unknown order.
            InvalidOrderStatus: the order is not pending.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order.id), current_status=order.status)
        if order.status != OrderStatus.PENDING:
            log.warning("order.cancel_not_allowed")
            raise InvalidOrderStatus(f"Cannot cancel order in status {order.status}.")

        items = list(order.items.order_by("product_id"))
        self._product_repo.lock_many(item.product_id for item in items)
        for item in items:
            remaining = self._product_repo.increment_stock(item.product_id, item.quantity)
            log.info(
                "order.stock_released",
                product_id=str(item.product_id),
                quantity=item.quantity,
                restored_stock=remaining,
            )

        payment = self._payment_repo.get_for_order(order.id, lock=True)
        if payment is not None and payment.status == PaymentStatus.PENDING:
            payment.status = PaymentStatus.FAILED
            self._payment_repo.save(payment)

        old_status = order.status
        order.status = OrderStatus.CANCELLED
        if order.is_payment_pending:
            order.payment_status = PaymentStatus.FAILED
        order.add_domain_event(OrderCancelled(aggregate_id=order.id, reason=notes))
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            status=OrderStatus.CANCELLED,
            notes=notes or "Order cancelled",
            old_status=old_status,
            user_id=user_id,
        )

        log.info("order.cancelled")
        return self._order_repo.get_by_id(str(order.id))

    @transaction.atomic
    def advance_status(
        self,
        order_id: UUID,
        new_status: str,
        notes: str = "",
        user_id: Optional[int] = None,
    ) -> Order:
        """Move a paid order along the fulfilment flow (processing, shipped, delivered).

        Payment confirmation and cancellation have their own use cases
        and are rejected here.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(
            order_id=str(order.id), current_status=order.status, new_status=new_status
        )
        if new_status in (OrderStatus.PAID, OrderStatus.CANCELLED) or not (
            order.can_transition_to(new_status)
        ):
            log.warning("order.invalid_transition")
            raise InvalidOrderStatus(
                f"Cannot transition from {order.status} to {new_status}."
            )

        old_status = order.status
        order.status = new_status
        self._order_repo.save(order)
        self._order_repo.add_history(
            order_id=order.id,
            status=new_status,
            notes=notes,
            old_status=old_status,
            user_id=user_id,
        )
        log.info("order.status_updated")
        return self._order_repo.get_by_id(str(order.id))

    @transaction.atomic
    def add_tracking_event(
        self, order_id: UUID, dto: AddTrackingEventDTO, user_id: Optional[int] = None
    ) -> OrderTrackingEvent:
        """Record a carrier event on an order that already has a tracking code.

        Raises:
            OrderNotFound: unknown order.
            InvalidOrderStatus: the order was never paid, so nothing ships.
        """
        order = self._order_repo.get_for_update(str(order_id))
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.")

        log = logger.bind(order_id=str(order.id), tracking_status=dto.status)
        if not order.tracking_code:
            log.warning("order.tracking_event_rejected", status=order.status)
            raise InvalidOrderStatus(
                f"Order {order.order_number} has no tracking code yet."
            )

        event = self._order_repo.add_tracking_event(
            order_id=order.id,
            status=dto.status,
            description=dto.description,
            location=dto.location,
            occurred_at=dto.occurred_at,
            user_id=user_id,
        )
        log.info("order.tracking_event_recorded", tracking_code=order.tracking_code)
        return event

    def list_tracking_events(self, order_id: UUID) -> List[OrderTrackingEvent]:
        if self._order_repo.get_by_id(str(order_id)) is None:
            raise OrderNotFound(f"Order {order_id} not found.")
        return self._order_repo.tracking_events(order_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_order(self, order_id: str, user_id: int) -> Order:
        """Retrieve one of the caller's orders.

        Raises:
            OrderNotFound: unknown order or owned by someone else.
        """
        order = self._order_repo.get_for_user(str(order_id), user_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found for user {user_id}.")
        return order

    def list_orders(
        self, user_id: int, filters: Optional[Dict[str, Any]] = None
    ) -> List[Order]:
        """Return the caller's orders, newest first."""
        return self._order_repo.list({**(filters or {}), "user_id": user_id})

    def track(self, tracking_code: str) -> Order:
        """Look an order up by tracking code; history is the timeline."""
        order = self._order_repo.get_by_tracking_code(tracking_code)
        if order is None:
            raise OrderNotFound(f"No order with tracking code {tracking_code}.")
        return order

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _advance(log, stage: PlacementStage, **extra: Any) -> PlacementStage:
        log.info("order.placement.stage", stage=str(stage), **extra)
        return stage

    @staticmethod
    def _snapshot(line: CartItem, product: Optional[Product]) -> CartLineSnapshot:
        """Join a cart line with its locked product row."""
        source = product or line.product
        return CartLineSnapshot(
            product_id=line.product_id,
            product_name=source.name,
            unit_price=source.price,
            stock_quantity=source.stock_quantity,
            is_active=product is not None and product.is_sellable,
            quantity=line.quantity,
        )

    def _shipping_cost(self, requested: Optional[Decimal], subtotal: Decimal) -> Decimal:
        if requested is not None:
            return requested.quantize(_CENTS)
        return self._shipping_policy.cost_for(subtotal).quantize(_CENTS)
