"""
Contract formation.

The one place a purchase order is born and a listing leaves the market.
Both negotiation acceptance and accept-at-listed-price call
``form_contract`` inside their own transaction; it only flushes.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from haymarket_kernel.domain.identity import Actor
from haymarket_kernel.exceptions import ListingUnavailableError
from haymarket_kernel.logging_config import get_logger
from haymarket_kernel.models.listing import Listing, ListingStatus
from haymarket_kernel.models.purchase_order import POStack, PurchaseOrder
from haymarket_kernel.services.numbering_service import guard_unique_flush
from haymarket_modules._service_helpers import ServiceKit
from haymarket_modules.purchase_orders.workflows import (
    LISTING_WORKFLOW,
    PURCHASE_ORDER_WORKFLOW,
)

logger = get_logger("modules.purchase_orders.formation")


def form_contract(
    kit: ServiceKit,
    listing: Listing,
    buyer_org_id: UUID,
    price_per_ton: Decimal,
    contracted_tons: Decimal,
    actor: Actor,
    signed_by_buyer_id: UUID | None = None,
) -> PurchaseOrder:
    """
    Create a DRAFT purchase order on ``listing`` and take the listing off
    the market.

    ``listing`` must already be locked by the caller.  A listing that is
    already under contract (a second thread on the same stack) keeps its
    status; one that is still available moves to under_contract through a
    guarded update.
    """
    session = kit.session
    po_number = kit.numbering.next_po_number()

    po = PurchaseOrder(
        po_number=po_number,
        buyer_org_id=buyer_org_id,
        grower_org_id=listing.organization_id,
        contracted_tons=contracted_tons,
        price_per_ton=price_per_ton,
        delivered_tons=Decimal("0"),
        status=PURCHASE_ORDER_WORKFLOW.initial_state,
        signed_by_buyer_id=signed_by_buyer_id,
        created_at=kit.clock.now(),
        created_by_id=actor.user_id,
    )
    with guard_unique_flush(session, kit.numbering.formats.po_number.sequence_name, po_number):
        session.add(po)

    session.add(
        POStack(po_id=po.id, listing_id=listing.id, allocated_tons=contracted_tons)
    )
    session.flush()

    transition = LISTING_WORKFLOW.transition_for(listing.status, "form_contract")
    if transition is not None:
        applied = kit.transitions.compare_and_set(
            Listing,
            listing.id,
            ListingStatus.AVAILABLE.value,
            {"status": transition.to_state, "updated_by_id": actor.user_id},
        )
        if not applied:
            raise ListingUnavailableError(str(listing.id), listing.status)

    logger.info(
        "contract_formed",
        extra={
            "po_id": str(po.id),
            "listing_id": str(listing.id),
            "contracted_tons": str(contracted_tons),
            "price_per_ton": str(price_per_ton),
        },
    )
    return po
