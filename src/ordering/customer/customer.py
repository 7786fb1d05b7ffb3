"""Customer reference aggregate.

Registration and profile management are owned elsewhere; ordering only needs
to know that the customer placing an order or listing their orders exists.
"""

from protean.fields import String

from ordering.domain import ordering


@ordering.aggregate
class Customer:
    name = String(max_length=255, required=True)
    email = String(max_length=255)
