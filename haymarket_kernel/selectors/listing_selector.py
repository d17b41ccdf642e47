"""Read queries over listings and the purchase orders drawn from them."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from haymarket_kernel.domain.dtos import (
    LinkedPurchaseOrder,
    ListingInfo,
    Page,
    PageRequest,
    disclosed_po_number,
)
from haymarket_kernel.models.listing import Listing, ListingStatus
from haymarket_kernel.models.purchase_order import POStack, PurchaseOrder
from haymarket_kernel.selectors.base import BaseSelector


class ListingSelector(BaseSelector[Listing]):
    """Listings as DTOs, with linked purchase order numbers redacted."""

    def _linked_purchase_orders(self, listing_id: UUID) -> tuple[LinkedPurchaseOrder, ...]:
        rows = self.session.execute(
            select(PurchaseOrder, POStack.allocated_tons)
            .join(POStack, POStack.po_id == PurchaseOrder.id)
            .where(POStack.listing_id == listing_id)
            .order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.po_number.desc())
        ).all()
        return tuple(
            LinkedPurchaseOrder(
                id=po.id,
                po_number=disclosed_po_number(
                    po.po_number, po.signed_by_buyer_id, po.signed_by_grower_id
                ),
                status=po.status,
                allocated_tons=Decimal(allocated),
            )
            for po, allocated in rows
        )

    def get(self, listing_id: UUID) -> ListingInfo | None:
        listing = self.session.get(Listing, listing_id)
        if listing is None:
            return None
        return ListingInfo.from_model(listing, self._linked_purchase_orders(listing.id))

    def search(
        self,
        page: PageRequest,
        status: str | None = ListingStatus.AVAILABLE.value,
        organization_id: UUID | None = None,
        product_type: str | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
    ) -> Page[ListingInfo]:
        """
        Filtered, paginated listings, newest first.

        ``product_type`` is a case-insensitive substring match; price bounds
        are inclusive.
        """
        query = select(Listing)
        if status is not None:
            query = query.where(Listing.status == status)
        if organization_id is not None:
            query = query.where(Listing.organization_id == organization_id)
        if product_type:
            query = query.where(
                func.lower(Listing.product_type).contains(product_type.lower())
            )
        if min_price is not None:
            query = query.where(Listing.price_per_ton >= min_price)
        if max_price is not None:
            query = query.where(Listing.price_per_ton <= max_price)

        total = self.session.execute(
            select(func.count()).select_from(query.subquery())
        ).scalar_one()

        listings = self.session.execute(
            query.order_by(Listing.created_at.desc(), Listing.stack_id.desc())
            .offset(page.offset)
            .limit(page.limit)
        ).scalars().all()

        return Page(
            items=tuple(ListingInfo.from_model(listing) for listing in listings),
            page=page.page,
            limit=page.limit,
            total=total,
        )
