"""
Module: haymarket_kernel.models.audit_event
Responsibility: ORM persistence for the tamper-evident audit hash chain.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Audit rows are append-only.
    - hash = H(entity_type | entity_id | action | payload_hash | prev_hash).
    - seq is monotonically increasing, allocated by SequenceService.

Contract signatures are not stored on the purchase order.  They live in the
``new_values`` of SIGN_PO and ACCEPT_LISTING_AND_SIGN rows and are read
back from here.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, BigInteger, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from haymarket_kernel.db.base import Base, UUIDString


class AuditAction(str, Enum):
    """Types of auditable actions."""

    CREATE_LISTING = "CREATE_LISTING"
    ACCEPT_NEGOTIATION = "ACCEPT_NEGOTIATION"
    ACCEPT_LISTING_AND_SIGN = "ACCEPT_LISTING_AND_SIGN"
    UPDATE_PO_TERMS = "UPDATE_PO_TERMS"
    SIGN_PO = "SIGN_PO"
    CLOSE_CONTRACT = "CLOSE_CONTRACT"
    SET_PO_CENTER = "SET_PO_CENTER"
    LOG_DELIVERY = "LOG_DELIVERY"
    EDIT_LOAD = "EDIT_LOAD"


SIGNATURE_ACTIONS: tuple[str, ...] = (
    AuditAction.SIGN_PO.value,
    AuditAction.ACCEPT_LISTING_AND_SIGN.value,
)


class AuditEvent(Base):
    """
    Audit event with hash chain for tamper evidence.

    Guarantees:
        - seq is unique and monotonically increasing.
        - prev_hash is None only for the genesis event.

    Non-goals:
        - This model does NOT compute hashes; AuditorService does.
    """

    __tablename__ = "audit_events"

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
        Index("idx_audit_action", "action"),
        Index("idx_audit_seq", "seq"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)

    # "Listing", "Negotiation", "PurchaseOrder", "Load"
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)

    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    old_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    new_values: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    hash: Mapped[str] = mapped_column(String(64), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditEvent {self.action} on {self.entity_type}:{self.entity_id}>"

    @property
    def is_genesis(self) -> bool:
        return self.prev_hash is None
