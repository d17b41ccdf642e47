"""Purchase orders module: contract formation, terms, signatures and close."""

from haymarket_modules.purchase_orders.formation import form_contract
from haymarket_modules.purchase_orders.models import (
    AcceptListingCommand,
    CenterUpdate,
    PurchaseOrderFilters,
    SignCommand,
    TermsUpdate,
)
from haymarket_modules.purchase_orders.service import PurchaseOrderService
from haymarket_modules.purchase_orders.workflows import (
    LISTING_WORKFLOW,
    PURCHASE_ORDER_WORKFLOW,
)

__all__ = [
    "AcceptListingCommand",
    "CenterUpdate",
    "LISTING_WORKFLOW",
    "PURCHASE_ORDER_WORKFLOW",
    "PurchaseOrderFilters",
    "PurchaseOrderService",
    "SignCommand",
    "TermsUpdate",
    "form_contract",
]
