"""Shopping Cart aggregate: the customer's selection that becomes an Order at checkout.

Each line carries the amount for its quantity at the price the product had
when the line was last touched; the cart keeps ``total_amount`` in step with
the lines after every mutation. Placing an order empties the cart but keeps
the cart itself, so the customer continues with the same cart afterwards.
"""

from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer

from ordering.cart.events import CartCleared, CartItemAdded, CartItemQuantityUpdated, CartItemRemoved
from ordering.domain import ordering
from ordering.money import line_amount, total_of


@ordering.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    amount = Float(required=True, min_value=0.0)
    added_at = DateTime()


@ordering.aggregate
class ShoppingCart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    total_amount = Float(default=0.0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_match_item_amounts(self):
        expected = total_of(item.amount for item in self.items)
        if round(self.total_amount or 0.0, 2) != expected:
            raise ValidationError({"total_amount": [f"Cart total {self.total_amount} does not match items ({expected})"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(customer_id=customer_id, total_amount=0.0, created_at=now, updated_at=now)

    @property
    def is_empty(self) -> bool:
        return not self.items

    def _find_item(self, item_id):
        return next((i for i in self.items if str(i.id) == str(item_id)), None)

    def _recalculate_total(self):
        self.total_amount = total_of(item.amount for item in self.items)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity, unit_price):
        """Add a product to the cart, merging into the existing line for that product."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be greater than zero"]})

        existing = next((i for i in self.items if str(i.product_id) == str(product_id)), None)
        now = datetime.now(UTC)

        with atomic_change(self):
            if existing:
                existing.quantity += quantity
                existing.unit_price = unit_price
                existing.amount = line_amount(existing.quantity, unit_price)
                item = existing
            else:
                item = CartItem(
                    product_id=product_id,
                    quantity=quantity,
                    unit_price=unit_price,
                    amount=line_amount(quantity, unit_price),
                    added_at=now,
                )
                self.add_items(item)

            self._recalculate_total()
            self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=str(item.id),
                product_id=str(product_id),
                quantity=quantity,
                amount=item.amount,
                total_amount=self.total_amount,
            )
        )
        return item

    def update_item_quantity(self, item_id, new_quantity, unit_price=None):
        """Change a line's quantity, repricing it at ``unit_price`` when given."""
        if new_quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be greater than zero"]})

        item = self._find_item(item_id)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})

        previous_quantity = item.quantity
        price = item.unit_price if unit_price is None else unit_price

        with atomic_change(self):
            item.quantity = new_quantity
            item.unit_price = price
            item.amount = line_amount(new_quantity, price)
            self._recalculate_total()
            self.updated_at = datetime.now(UTC)

        self.raise_(
            CartItemQuantityUpdated(
                cart_id=str(self.id),
                item_id=str(item_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
                total_amount=self.total_amount,
            )
        )

    def remove_item(self, item_id):
        item = self._find_item(item_id)
        if item is None:
            raise ValidationError({"item_id": ["Item not found in cart"]})

        with atomic_change(self):
            self.remove_items(item)
            self._recalculate_total()
            self.updated_at = datetime.now(UTC)

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                item_id=str(item_id),
                product_id=str(item.product_id),
                total_amount=self.total_amount,
            )
        )

    def clear(self):
        """Remove every line and reset the total to zero."""
        item_count = len(self.items)

        with atomic_change(self):
            for item in list(self.items):
                self.remove_items(item)
            self.total_amount = 0.0
            self.updated_at = datetime.now(UTC)

        self.raise_(
            CartCleared(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                item_count=item_count,
            )
        )


@ordering.repository(part_of=ShoppingCart)
class CartRepository:
    def find_for_customer(self, customer_id) -> ShoppingCart | None:
        carts = self._dao.query.filter(customer_id=str(customer_id)).all().items
        if not carts:
            return None
        return self.get(carts[0].id)
