"""
Module: haymarket_kernel.models.negotiation
Responsibility: ORM persistence for offer/counter-offer threads.
Architecture position: Kernel > Models.  May import from db/base.py only.

Thread shape:
    A thread is flat.  The root row has parent_id NULL and round_number 1;
    every later offer stores parent_id = root id (never the previous node)
    and round_number = previous round + 1.  Fetching a thread is
    ``id = root OR parent_id = root`` ordered by round_number.

Invariants enforced:
    - At most one pending row per thread.
    - The counterparty of a row is whichever of buyer/grower did not make it.
    - purchase_order_id is set only on the accepted row.
"""

from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from haymarket_kernel.db.base import TrackedBase, UUIDString


class NegotiationStatus(str, Enum):
    PENDING = "pending"
    COUNTERED = "countered"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Negotiation(TrackedBase):
    """One offer in a negotiation thread."""

    __tablename__ = "negotiations"

    __table_args__ = (
        Index("idx_negotiation_listing", "listing_id"),
        Index("idx_negotiation_parent", "parent_id"),
        Index("idx_negotiation_buyer", "buyer_org_id"),
        Index("idx_negotiation_grower", "grower_org_id"),
    )

    listing_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("listings.id"), nullable=False
    )
    buyer_org_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    grower_org_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    offered_price_per_ton: Mapped[Decimal] = mapped_column(nullable=False)
    offered_tons: Mapped[Decimal | None] = mapped_column(nullable=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)

    offered_by_org_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    offered_by_user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=NegotiationStatus.PENDING.value,
    )

    # NULL for the thread root; root id for every reply
    parent_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("negotiations.id"), nullable=True
    )
    round_number: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    purchase_order_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("purchase_orders.id"), nullable=True
    )

    @property
    def thread_id(self) -> UUID:
        return self.parent_id or self.id

    def __repr__(self) -> str:
        return f"<Negotiation {self.id} round={self.round_number} {self.status}>"
