"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Float, Identifier, Integer

from ordering.domain import ordering


@ordering.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to the cart, or its existing line was topped up."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    amount = Float(required=True)
    total_amount = Float(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemQuantityUpdated:
    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    total_amount = Float(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    total_amount = Float(required=True)


@ordering.event(part_of="ShoppingCart")
class CartCleared:
    """All items were removed, typically because the cart became an order."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    item_count = Integer(required=True)
