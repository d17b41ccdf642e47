"""
Module: haymarket_kernel.models.purchase_order
Responsibility: ORM persistence for purchase orders (contracts) and their
    link rows to listings.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - po_number is unique; it is allocated at creation but only disclosed
      once both parties have signed (read DTOs redact it before then).
    - status is ACTIVE iff both signed_by_* columns are set; signed_at is
      stamped once, on the transition to ACTIVE.
    - Term columns are frozen once either signature exists.
    - COMPLETED is reachable only from ACTIVE.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from haymarket_kernel.db.base import Base, TrackedBase, UUIDString


class PurchaseOrderStatus(str, Enum):
    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"


class PurchaseOrder(TrackedBase):
    """A contract between a buyer and a grower organization."""

    __tablename__ = "purchase_orders"

    __table_args__ = (
        Index("idx_po_buyer", "buyer_org_id"),
        Index("idx_po_grower", "grower_org_id"),
        Index("idx_po_status", "status"),
    )

    po_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)

    buyer_org_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    grower_org_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    contracted_tons: Mapped[Decimal] = mapped_column(nullable=False)
    price_per_ton: Mapped[Decimal] = mapped_column(nullable=False)
    delivered_tons: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=PurchaseOrderStatus.DRAFT.value,
    )

    signed_by_buyer_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    signed_by_grower_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    signed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Terms (editable only while unsigned DRAFT)
    delivery_start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    delivery_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    max_moisture_percent: Mapped[Decimal | None] = mapped_column(nullable=True)
    quality_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Operational tags (editable in any status)
    center: Mapped[str | None] = mapped_column(String(100), nullable=True)
    hay_class: Mapped[str | None] = mapped_column(String(100), nullable=True)

    @property
    def both_signed(self) -> bool:
        return self.signed_by_buyer_id is not None and self.signed_by_grower_id is not None

    @property
    def any_signed(self) -> bool:
        return self.signed_by_buyer_id is not None or self.signed_by_grower_id is not None

    def __repr__(self) -> str:
        return f"<PurchaseOrder {self.po_number} {self.status}>"


class POStack(Base):
    """Allocation of a listing's tonnage to a purchase order."""

    __tablename__ = "po_stacks"

    __table_args__ = (
        Index("idx_po_stack_po", "po_id"),
        Index("idx_po_stack_listing", "listing_id"),
    )

    po_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("purchase_orders.id"), nullable=False
    )
    listing_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("listings.id"), nullable=False
    )
    allocated_tons: Mapped[Decimal] = mapped_column(nullable=False)
