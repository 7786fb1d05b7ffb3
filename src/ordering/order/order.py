"""Order aggregate: a committed purchase awaiting or holding its payment outcome.

An order is created from a cart with its stock already reserved. From then
on only its payment-related state changes, driven by the gateway's status for
the order's payment intent:

    Pending ──▶ Confirmed            (payment succeeded)
       │  ──▶ Failed                 (payment method rejected / action required)
       │  ──▶ Cancelled              (intent cancelled)
       │
    Failed ──retry──▶ Failed + payment processing ──▶ Confirmed / Failed / Cancelled

Items and ``total_amount`` are frozen at creation. ``inventory_released``
records that the stock of the current payment attempt was handed back, so
that a duplicated notification never restores it twice.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String

from ordering.domain import ordering
from ordering.money import DEFAULT_CURRENCY, line_amount, total_of
from ordering.order.events import (
    InventoryRestored,
    OrderConfirmed,
    OrderPaymentCancelled,
    OrderPaymentFailed,
    OrderPlaced,
    PaymentInitiated,
    PaymentProcessing,
    PaymentRetryInitiated,
)


class OrderStatus(Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


class PaymentStatus(Enum):
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.FAILED, OrderStatus.CANCELLED},
    # A failed order moves again only while a retried payment is processing
    OrderStatus.FAILED: {OrderStatus.CONFIRMED, OrderStatus.FAILED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}


@ordering.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    product_name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    amount = Float(required=True, min_value=0.0)


@ordering.aggregate
class Order:
    customer_id = Identifier(required=True)
    items = HasMany(OrderItem)
    total_amount = Float(default=0.0)
    currency = String(max_length=3, default=DEFAULT_CURRENCY)
    order_status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus)
    payment_intent_id = String(max_length=255)
    inventory_released = Boolean(default=False)
    created_at = DateTime()
    updated_at = DateTime()
    paid_at = DateTime()

    @invariant.post
    def total_must_match_item_amounts(self):
        expected = total_of(item.amount for item in self.items)
        if round(self.total_amount or 0.0, 2) != expected:
            raise ValidationError({"total_amount": [f"Order total {self.total_amount} does not match items ({expected})"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, customer_id, lines, currency=DEFAULT_CURRENCY):
        """Create a Pending order from priced lines.

        Each line is a dict with ``product_id``, ``product_name``, ``quantity``
        and ``unit_price``. Stock must already be reserved by the caller.
        """
        if not lines:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = datetime.now(UTC)
        order = cls(
            customer_id=customer_id,
            currency=currency,
            order_status=OrderStatus.PENDING.value,
            created_at=now,
            updated_at=now,
        )

        items = [
            OrderItem(
                product_id=line["product_id"],
                product_name=line.get("product_name"),
                quantity=line["quantity"],
                unit_price=line["unit_price"],
                amount=line_amount(line["quantity"], line["unit_price"]),
            )
            for line in lines
        ]

        with atomic_change(order):
            for item in items:
                order.add_items(item)
            order.total_amount = total_of(item.amount for item in items)

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id),
                items=json.dumps(
                    [
                        {
                            "product_id": str(item.product_id),
                            "product_name": item.product_name,
                            "quantity": item.quantity,
                            "unit_price": item.unit_price,
                            "amount": item.amount,
                        }
                        for item in items
                    ]
                ),
                total_amount=order.total_amount,
                currency=currency,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State queries
    # -------------------------------------------------------------------
    @property
    def status(self) -> OrderStatus:
        return OrderStatus(self.order_status)

    @property
    def awaiting_payment(self) -> bool:
        """True while the gateway may still change this order's outcome."""
        return self.order_status == OrderStatus.PENDING.value or self.payment_status == PaymentStatus.PROCESSING.value

    @property
    def can_retry_payment(self) -> bool:
        return (
            self.order_status == OrderStatus.FAILED.value and self.payment_status == PaymentStatus.FAILED.value
        )

    def _assert_can_transition(self, target_status):
        current = self.status
        if not self.awaiting_payment or target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"order_status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _touch(self):
        self.updated_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Payment lifecycle
    # -------------------------------------------------------------------
    def attach_payment_intent(self, payment_intent_id):
        """Record the gateway intent opened for this order's first payment attempt."""
        if self.order_status != OrderStatus.PENDING.value:
            raise ValidationError({"order_status": ["Payment can only be initiated for a pending order"]})
        if self.payment_intent_id:
            raise ValidationError({"payment_intent_id": ["Payment has already been initiated for this order"]})

        self.payment_intent_id = payment_intent_id
        self._touch()

        self.raise_(
            PaymentInitiated(
                order_id=str(self.id),
                payment_intent_id=payment_intent_id,
                amount=self.total_amount,
                currency=self.currency,
            )
        )

    def mark_payment_processing(self):
        if not self.awaiting_payment:
            raise ValidationError({"payment_status": ["Only orders awaiting payment can be marked processing"]})

        self.payment_status = PaymentStatus.PROCESSING.value
        self._touch()

        self.raise_(PaymentProcessing(order_id=str(self.id), payment_intent_id=self.payment_intent_id))

    def confirm_payment(self):
        self._assert_can_transition(OrderStatus.CONFIRMED)

        now = datetime.now(UTC)
        self.order_status = OrderStatus.CONFIRMED.value
        self.payment_status = PaymentStatus.SUCCEEDED.value
        self.paid_at = now
        self.updated_at = now

        self.raise_(OrderConfirmed(order_id=str(self.id), payment_intent_id=self.payment_intent_id, paid_at=now))

    def fail_payment(self, gateway_status):
        self._assert_can_transition(OrderStatus.FAILED)

        self.order_status = OrderStatus.FAILED.value
        self.payment_status = PaymentStatus.FAILED.value
        self._touch()

        self.raise_(
            OrderPaymentFailed(
                order_id=str(self.id),
                payment_intent_id=self.payment_intent_id,
                gateway_status=gateway_status,
            )
        )

    def cancel_payment(self):
        self._assert_can_transition(OrderStatus.CANCELLED)

        self.order_status = OrderStatus.CANCELLED.value
        self.payment_status = PaymentStatus.CANCELLED.value
        self._touch()

        self.raise_(OrderPaymentCancelled(order_id=str(self.id), payment_intent_id=self.payment_intent_id))

    def record_inventory_restored(self):
        """Mark the current attempt's stock as handed back."""
        if self.inventory_released:
            raise ValidationError({"inventory_released": ["Inventory for this attempt was already restored"]})

        self.inventory_released = True
        self._touch()

        self.raise_(
            InventoryRestored(
                order_id=str(self.id),
                items=json.dumps([{"product_id": str(i.product_id), "quantity": i.quantity} for i in self.items]),
            )
        )

    def record_retry(self, payment_intent_id):
        """Start a new payment attempt for a failed order with re-reserved stock.

        The order stays Failed until the new attempt is reconciled.
        """
        if not self.can_retry_payment:
            raise ValidationError({"order_status": ["Only failed orders with a failed payment can be retried"]})

        previous = self.payment_intent_id
        self.payment_intent_id = payment_intent_id
        self.payment_status = PaymentStatus.PROCESSING.value
        self.inventory_released = False
        self._touch()

        self.raise_(
            PaymentRetryInitiated(
                order_id=str(self.id),
                payment_intent_id=payment_intent_id,
                previous_payment_intent_id=previous,
            )
        )
