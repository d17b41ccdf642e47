"""ORM models for the haymarket kernel."""

from haymarket_kernel.models.audit_event import SIGNATURE_ACTIONS, AuditAction, AuditEvent
from haymarket_kernel.models.listing import Listing, ListingStatus
from haymarket_kernel.models.load import Load, LoadEdit
from haymarket_kernel.models.negotiation import Negotiation, NegotiationStatus
from haymarket_kernel.models.purchase_order import (
    POStack,
    PurchaseOrder,
    PurchaseOrderStatus,
)

__all__ = [
    "AuditAction",
    "AuditEvent",
    "Listing",
    "ListingStatus",
    "Load",
    "LoadEdit",
    "Negotiation",
    "NegotiationStatus",
    "POStack",
    "PurchaseOrder",
    "PurchaseOrderStatus",
    "SIGNATURE_ACTIONS",
]
