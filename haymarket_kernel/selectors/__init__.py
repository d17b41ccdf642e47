"""Read-only selectors returning DTOs."""

from haymarket_kernel.selectors.delivery_selector import DeliverySelector
from haymarket_kernel.selectors.listing_selector import ListingSelector
from haymarket_kernel.selectors.negotiation_selector import NegotiationSelector
from haymarket_kernel.selectors.purchase_order_selector import PurchaseOrderSelector

__all__ = [
    "DeliverySelector",
    "ListingSelector",
    "NegotiationSelector",
    "PurchaseOrderSelector",
]
