"""Ordering bounded context — Checkout and Payment Reconciliation.

Converts shopping carts into orders while reserving inventory, opens payment
sessions with the external gateway, and reconciles order state against the
gateway's asynchronous payment status.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
