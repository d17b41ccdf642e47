"""
Read queries over purchase orders and their contract signatures.

Every DTO produced here passes its PO number through
``disclosed_po_number``, so the number stays hidden until both parties
have signed.
"""

from uuid import UUID

from sqlalchemy import or_, select

from haymarket_kernel.domain.dtos import PurchaseOrderInfo, SignatureInfo
from haymarket_kernel.models.audit_event import SIGNATURE_ACTIONS, AuditEvent
from haymarket_kernel.models.purchase_order import POStack, PurchaseOrder
from haymarket_kernel.selectors.base import BaseSelector


class PurchaseOrderSelector(BaseSelector[PurchaseOrder]):
    """Purchase orders as redacted DTOs."""

    def linked_listing_id(self, po_id: UUID) -> UUID | None:
        return self.session.execute(
            select(POStack.listing_id).where(POStack.po_id == po_id).limit(1)
        ).scalar_one_or_none()

    def get(self, po_id: UUID) -> PurchaseOrderInfo | None:
        po = self.session.get(PurchaseOrder, po_id)
        if po is None:
            return None
        return PurchaseOrderInfo.from_model(po, self.linked_listing_id(po.id))

    def list_for_organization(
        self,
        organization_id: UUID,
        status: str | None = None,
        center: str | None = None,
    ) -> tuple[PurchaseOrderInfo, ...]:
        """POs where the organization is buyer or grower, newest first."""
        query = select(PurchaseOrder, POStack.listing_id).outerjoin(
            POStack, POStack.po_id == PurchaseOrder.id
        ).where(
            or_(
                PurchaseOrder.buyer_org_id == organization_id,
                PurchaseOrder.grower_org_id == organization_id,
            )
        )
        if status is not None:
            query = query.where(PurchaseOrder.status == status)
        if center is not None:
            query = query.where(PurchaseOrder.center == center)

        rows = self.session.execute(
            query.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.po_number.desc())
        ).all()
        return tuple(PurchaseOrderInfo.from_model(po, listing_id) for po, listing_id in rows)

    def signatures(
        self, po_id: UUID
    ) -> tuple[SignatureInfo | None, SignatureInfo | None]:
        """
        (buyer, grower) signatures rebuilt from the audit trail.

        Events are scanned in seq order; the first event for a side wins,
        so re-reading is stable whatever gets appended later.
        """
        events = self.session.execute(
            select(AuditEvent)
            .where(AuditEvent.entity_type == "PurchaseOrder")
            .where(AuditEvent.entity_id == po_id)
            .where(AuditEvent.action.in_(SIGNATURE_ACTIONS))
            .order_by(AuditEvent.seq)
        ).scalars().all()

        found: dict[str, SignatureInfo] = {}
        for event in events:
            values = event.new_values or {}
            side = values.get("side")
            if side not in ("buyer", "grower") or side in found:
                continue
            found[side] = SignatureInfo(
                side=side,
                typed_name=values.get("typed_name", ""),
                signature_image=values.get("signature_image"),
                signed_by_id=event.actor_id,
                signed_at=event.occurred_at,
                audit_seq=event.seq,
            )
        return found.get("buyer"), found.get("grower")
