"""
DTOs -- immutable read shapes returned by every core operation.

Responsibility:
    Services and selectors return these frozen dataclasses, never ORM rows.
    ``from_model`` class methods are the boundary converters; they are only
    called from the service and selector layers.

Invariants enforced:
    - Purchase order numbers are disclosed only once both parties have
      signed.  Every DTO that carries a PO number gets it through
      ``disclosed_po_number``.
    - Load DTOs carry derived net weight, net tons and average bale weight
      rounded half-up to two places.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Generic, TypeVar
from uuid import UUID

from haymarket_kernel.domain.weights import (
    DISPLAY_PLACES,
    POUNDS_PER_TON,
    avg_bale_weight,
    net_weight,
    round_half_up,
    tons_from_pounds,
)

if TYPE_CHECKING:
    from haymarket_kernel.models.listing import Listing
    from haymarket_kernel.models.load import Load, LoadEdit
    from haymarket_kernel.models.negotiation import Negotiation
    from haymarket_kernel.models.purchase_order import PurchaseOrder

T = TypeVar("T")


def disclosed_po_number(
    po_number: str | None,
    signed_by_buyer_id: UUID | None,
    signed_by_grower_id: UUID | None,
) -> str | None:
    """The PO number, or None while either signature is missing."""
    if signed_by_buyer_id is None or signed_by_grower_id is None:
        return None
    return po_number


def _dec(value: Any) -> Decimal | None:
    return None if value is None else Decimal(value)


@dataclass(frozen=True)
class PurchaseOrderInfo:
    """Read shape of a purchase order (number redacted until both-signed)."""

    id: UUID
    po_number: str | None
    buyer_org_id: UUID
    grower_org_id: UUID
    contracted_tons: Decimal
    price_per_ton: Decimal
    delivered_tons: Decimal
    status: str
    signed_by_buyer_id: UUID | None
    signed_by_grower_id: UUID | None
    signed_at: datetime | None
    completed_at: datetime | None
    delivery_start_date: date | None
    delivery_end_date: date | None
    max_moisture_percent: Decimal | None
    quality_notes: str | None
    center: str | None
    hay_class: str | None
    listing_id: UUID | None = None
    created_at: datetime | None = None

    @property
    def both_signed(self) -> bool:
        return self.signed_by_buyer_id is not None and self.signed_by_grower_id is not None

    @classmethod
    def from_model(
        cls, po: PurchaseOrder, listing_id: UUID | None = None
    ) -> PurchaseOrderInfo:
        return cls(
            id=po.id,
            po_number=disclosed_po_number(
                po.po_number, po.signed_by_buyer_id, po.signed_by_grower_id
            ),
            buyer_org_id=po.buyer_org_id,
            grower_org_id=po.grower_org_id,
            contracted_tons=Decimal(po.contracted_tons),
            price_per_ton=Decimal(po.price_per_ton),
            delivered_tons=Decimal(po.delivered_tons),
            status=po.status,
            signed_by_buyer_id=po.signed_by_buyer_id,
            signed_by_grower_id=po.signed_by_grower_id,
            signed_at=po.signed_at,
            completed_at=po.completed_at,
            delivery_start_date=po.delivery_start_date,
            delivery_end_date=po.delivery_end_date,
            max_moisture_percent=_dec(po.max_moisture_percent),
            quality_notes=po.quality_notes,
            center=po.center,
            hay_class=po.hay_class,
            listing_id=listing_id,
            created_at=po.created_at,
        )


@dataclass(frozen=True)
class LinkedPurchaseOrder:
    """A purchase order as shown on its listing."""

    id: UUID
    po_number: str | None
    status: str
    allocated_tons: Decimal


@dataclass(frozen=True)
class ListingInfo:
    """Read shape of a listing."""

    id: UUID
    stack_id: str
    organization_id: UUID
    price_per_ton: Decimal
    estimated_tons: Decimal | None
    bale_count: int | None
    product_type: str | None
    bale_type: str | None
    moisture_percent: Decimal | None
    notes: str | None
    status: str
    firm_price: bool
    is_delivered_price: bool
    trucking_coordinated_by: str | None
    created_at: datetime | None = None
    purchase_orders: tuple[LinkedPurchaseOrder, ...] = ()

    @classmethod
    def from_model(
        cls,
        listing: Listing,
        purchase_orders: tuple[LinkedPurchaseOrder, ...] = (),
    ) -> ListingInfo:
        return cls(
            id=listing.id,
            stack_id=listing.stack_id,
            organization_id=listing.organization_id,
            price_per_ton=Decimal(listing.price_per_ton),
            estimated_tons=_dec(listing.estimated_tons),
            bale_count=listing.bale_count,
            product_type=listing.product_type,
            bale_type=listing.bale_type,
            moisture_percent=_dec(listing.moisture_percent),
            notes=listing.notes,
            status=listing.status,
            firm_price=bool(listing.firm_price),
            is_delivered_price=bool(listing.is_delivered_price),
            trucking_coordinated_by=listing.trucking_coordinated_by,
            created_at=listing.created_at,
            purchase_orders=purchase_orders,
        )


@dataclass(frozen=True)
class NegotiationInfo:
    """Read shape of one offer in a thread."""

    id: UUID
    thread_id: UUID
    listing_id: UUID
    buyer_org_id: UUID
    grower_org_id: UUID
    offered_price_per_ton: Decimal
    offered_tons: Decimal | None
    message: str | None
    offered_by_org_id: UUID
    offered_by_user_id: UUID
    status: str
    parent_id: UUID | None
    round_number: int
    purchase_order_id: UUID | None
    created_at: datetime | None = None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @classmethod
    def from_model(cls, negotiation: Negotiation) -> NegotiationInfo:
        return cls(
            id=negotiation.id,
            thread_id=negotiation.parent_id or negotiation.id,
            listing_id=negotiation.listing_id,
            buyer_org_id=negotiation.buyer_org_id,
            grower_org_id=negotiation.grower_org_id,
            offered_price_per_ton=Decimal(negotiation.offered_price_per_ton),
            offered_tons=_dec(negotiation.offered_tons),
            message=negotiation.message,
            offered_by_org_id=negotiation.offered_by_org_id,
            offered_by_user_id=negotiation.offered_by_user_id,
            status=negotiation.status,
            parent_id=negotiation.parent_id,
            round_number=negotiation.round_number,
            purchase_order_id=negotiation.purchase_order_id,
            created_at=negotiation.created_at,
        )


@dataclass(frozen=True)
class ThreadInfo:
    """A negotiation thread: root offer plus replies in round order."""

    root: NegotiationInfo
    replies: tuple[NegotiationInfo, ...] = ()

    @property
    def nodes(self) -> tuple[NegotiationInfo, ...]:
        return (self.root, *self.replies)

    @property
    def latest(self) -> NegotiationInfo:
        return self.replies[-1] if self.replies else self.root

    @property
    def pending(self) -> tuple[NegotiationInfo, ...]:
        return tuple(n for n in self.nodes if n.status == "pending")


@dataclass(frozen=True)
class AcceptedNegotiation:
    """Result of accepting an offer: the accepted node and its new PO."""

    negotiation: NegotiationInfo
    purchase_order: PurchaseOrderInfo


@dataclass(frozen=True)
class SignatureInfo:
    """One party's signature, as recorded in the audit trail."""

    side: str
    typed_name: str
    signature_image: str | None
    signed_by_id: UUID
    signed_at: datetime
    audit_seq: int


@dataclass(frozen=True)
class ContractInfo:
    """A purchase order together with the signatures on it."""

    purchase_order: PurchaseOrderInfo
    buyer_signature: SignatureInfo | None
    grower_signature: SignatureInfo | None


@dataclass(frozen=True)
class PickupInfo:
    """What a hauler needs to collect hay against an ACTIVE contract."""

    purchase_order_id: UUID
    po_number: str | None
    buyer_org_id: UUID
    grower_org_id: UUID
    contracted_tons: Decimal
    delivered_tons: Decimal
    price_per_ton: Decimal
    delivery_start_date: date | None
    delivery_end_date: date | None
    center: str | None
    hay_class: str | None
    listing_id: UUID | None
    stack_id: str | None
    product_type: str | None
    bale_type: str | None
    bale_count: int | None


@dataclass(frozen=True)
class LoadInfo:
    """Read shape of a delivered load with derived weights."""

    id: UUID
    load_number: str
    po_id: UUID
    po_number: str | None
    listing_id: UUID
    gross_weight: Decimal
    tare_weight: Decimal
    net_weight: Decimal
    net_tons: Decimal
    total_bale_count: int
    wet_bales_count: int
    avg_bale_weight: Decimal
    delivery_datetime: datetime
    entered_by_id: UUID
    location: str | None

    @classmethod
    def from_model(
        cls,
        load: Load,
        po_number: str | None = None,
        pounds_per_ton: Decimal = POUNDS_PER_TON,
        places: int = DISPLAY_PLACES,
    ) -> LoadInfo:
        net = net_weight(load.gross_weight, load.tare_weight)
        return cls(
            id=load.id,
            load_number=load.load_number,
            po_id=load.po_id,
            po_number=po_number,
            listing_id=load.listing_id,
            gross_weight=Decimal(load.gross_weight),
            tare_weight=Decimal(load.tare_weight),
            net_weight=round_half_up(net, places),
            net_tons=round_half_up(tons_from_pounds(net, pounds_per_ton), places),
            total_bale_count=load.total_bale_count,
            wet_bales_count=load.wet_bales_count,
            avg_bale_weight=round_half_up(
                avg_bale_weight(net, load.total_bale_count), places
            ),
            delivery_datetime=load.delivery_datetime,
            entered_by_id=load.entered_by_id,
            location=load.quality_notes,
        )


@dataclass(frozen=True)
class LoadEditInfo:
    """One changed field from a load edit."""

    load_id: UUID
    field_name: str
    old_value: str | None
    new_value: str | None
    edited_by_id: UUID
    edited_at: datetime

    @classmethod
    def from_model(cls, edit: LoadEdit) -> LoadEditInfo:
        return cls(
            load_id=edit.load_id,
            field_name=edit.field_name,
            old_value=edit.old_value,
            new_value=edit.new_value,
            edited_by_id=edit.edited_by_id,
            edited_at=edit.edited_at,
        )


@dataclass(frozen=True)
class Page(Generic[T]):
    """One page of a paginated listing."""

    items: tuple[T, ...]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return (self.total + self.limit - 1) // self.limit if self.limit else 0


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass(frozen=True)
class AuditRecord:
    """Read shape of one audit trail entry."""

    seq: int
    entity_type: str
    entity_id: UUID
    action: str
    actor_id: UUID
    occurred_at: datetime
    old_values: dict | None = None
    new_values: dict | None = None
