"""Read queries over delivered loads and their edit history."""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import or_, select

from haymarket_kernel.domain.dtos import LoadEditInfo, LoadInfo, disclosed_po_number
from haymarket_kernel.domain.weights import DISPLAY_PLACES, POUNDS_PER_TON
from haymarket_kernel.models.load import Load, LoadEdit
from haymarket_kernel.models.purchase_order import PurchaseOrder
from haymarket_kernel.selectors.base import BaseSelector


class DeliverySelector(BaseSelector[Load]):
    """Loads as DTOs with derived weights."""

    def __init__(
        self,
        session,
        pounds_per_ton: Decimal = POUNDS_PER_TON,
        places: int = DISPLAY_PLACES,
    ):
        super().__init__(session)
        self._pounds_per_ton = pounds_per_ton
        self._places = places

    def _to_info(self, load: Load, po: PurchaseOrder) -> LoadInfo:
        return LoadInfo.from_model(
            load,
            po_number=disclosed_po_number(
                po.po_number, po.signed_by_buyer_id, po.signed_by_grower_id
            ),
            pounds_per_ton=self._pounds_per_ton,
            places=self._places,
        )

    def get(self, load_id: UUID) -> LoadInfo | None:
        row = self.session.execute(
            select(Load, PurchaseOrder)
            .join(PurchaseOrder, PurchaseOrder.id == Load.po_id)
            .where(Load.id == load_id)
        ).first()
        if row is None:
            return None
        load, po = row
        return self._to_info(load, po)

    def loads_for_purchase_order(self, po_id: UUID) -> tuple[LoadInfo, ...]:
        """Loads on one PO, most recent delivery first."""
        rows = self.session.execute(
            select(Load, PurchaseOrder)
            .join(PurchaseOrder, PurchaseOrder.id == Load.po_id)
            .where(Load.po_id == po_id)
            .order_by(Load.delivery_datetime.desc(), Load.load_number.desc())
        ).all()
        return tuple(self._to_info(load, po) for load, po in rows)

    def loads_for_organization(self, organization_id: UUID) -> tuple[LoadInfo, ...]:
        """Loads on every PO the organization is party to, most recent first."""
        rows = self.session.execute(
            select(Load, PurchaseOrder)
            .join(PurchaseOrder, PurchaseOrder.id == Load.po_id)
            .where(
                or_(
                    PurchaseOrder.buyer_org_id == organization_id,
                    PurchaseOrder.grower_org_id == organization_id,
                )
            )
            .order_by(Load.delivery_datetime.desc(), Load.load_number.desc())
        ).all()
        return tuple(self._to_info(load, po) for load, po in rows)

    def history(self, load_id: UUID) -> tuple[LoadEditInfo, ...]:
        """Field-level edits in the order they were made."""
        edits = self.session.execute(
            select(LoadEdit)
            .where(LoadEdit.load_id == load_id)
            .order_by(LoadEdit.edited_at, LoadEdit.edit_seq)
        ).scalars().all()
        return tuple(LoadEditInfo.from_model(e) for e in edits)
