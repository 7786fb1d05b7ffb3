"""Product aggregate: the catalogue entry whose on-hand quantity is the inventory counter.

Product records are maintained by catalogue administration, which lives
outside this context. Within ordering, the only mutation ever applied to a
product is a change of ``quantity``, and that always goes through
``InventoryLedger``.
"""

from protean.fields import Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.aggregate
class Product:
    name = String(max_length=255, required=True)
    price = Float(required=True, min_value=0.0)
    quantity = Integer(default=0, min_value=0)
    category_id = Identifier()
    category = String(max_length=255)

    def can_supply(self, quantity: int) -> bool:
        return self.quantity >= quantity

    @property
    def description(self) -> str:
        return self.category or self.name
