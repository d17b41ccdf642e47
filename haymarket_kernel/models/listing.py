"""
Module: haymarket_kernel.models.listing
Responsibility: ORM persistence for hay inventory offered for sale ("stacks").
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - stack_id is unique and issued by NumberingService.
    - status moves only available -> under_contract, and only inside the
      contract-formation transactions (negotiation accept, accept at price).
    - Listings are never deleted.
"""

from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from haymarket_kernel.db.base import TrackedBase, UUIDString


class ListingStatus(str, Enum):
    AVAILABLE = "available"
    UNDER_CONTRACT = "under_contract"
    DEPLETED = "depleted"


class Listing(TrackedBase):
    """A stack of hay listed by a grower organization."""

    __tablename__ = "listings"

    __table_args__ = (
        Index("idx_listing_org", "organization_id"),
        Index("idx_listing_status", "status"),
    )

    # Grower organization that owns the hay
    organization_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # Human-readable stack number ("100001")
    stack_id: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)

    price_per_ton: Mapped[Decimal] = mapped_column(nullable=False)
    estimated_tons: Mapped[Decimal | None] = mapped_column(nullable=True)
    bale_count: Mapped[int | None] = mapped_column(nullable=True)

    product_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    bale_type: Mapped[str | None] = mapped_column(String(100), nullable=True)
    moisture_percent: Mapped[Decimal | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ListingStatus.AVAILABLE.value,
    )

    firm_price: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_delivered_price: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    trucking_coordinated_by: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )

    def __repr__(self) -> str:
        return f"<Listing {self.stack_id} {self.status}>"
