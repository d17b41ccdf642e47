"""
Module: haymarket_kernel.models.load
Responsibility: ORM persistence for delivered truck loads and their
    field-level edit history.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - load_number is unique and issued by NumberingService.
    - gross_weight - tare_weight > 0 at creation and after every edit.
    - Each load edit writes one LoadEdit row per changed field.

Weights are pounds.  Derived values (net weight, net tons, average bale
weight) are computed on read by ``haymarket_kernel.domain.weights``.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from haymarket_kernel.db.base import Base, TrackedBase, UUIDString


class Load(TrackedBase):
    """A single truck load delivered against an ACTIVE purchase order."""

    __tablename__ = "loads"

    __table_args__ = (
        Index("idx_load_po", "po_id"),
        Index("idx_load_listing", "listing_id"),
    )

    load_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)

    po_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("purchase_orders.id"), nullable=False
    )
    listing_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("listings.id"), nullable=False
    )

    gross_weight: Mapped[Decimal] = mapped_column(nullable=False)
    tare_weight: Mapped[Decimal] = mapped_column(nullable=False)
    total_bale_count: Mapped[int] = mapped_column(Integer, nullable=False)
    wet_bales_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    delivery_datetime: Mapped[datetime] = mapped_column(nullable=False)
    entered_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    # Free-text pickup/delivery location
    quality_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    @property
    def net_weight(self) -> Decimal:
        return Decimal(self.gross_weight) - Decimal(self.tare_weight)

    def __repr__(self) -> str:
        return f"<Load {self.load_number}>"


class LoadEdit(Base):
    """One changed field of one load edit."""

    __tablename__ = "load_edits"

    __table_args__ = (
        Index("idx_load_edit_load", "load_id"),
    )

    load_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("loads.id"), nullable=False
    )
    edited_by_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    field_name: Mapped[str] = mapped_column(String(50), nullable=False)
    old_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)
    edited_at: Mapped[datetime] = mapped_column(nullable=False)
    # Position of this row within its edit, for stable history ordering
    edit_seq: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
