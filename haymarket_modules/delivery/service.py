"""
Delivery Module Service (``haymarket_modules.delivery.service``).

Responsibility
--------------
Records truck loads against ACTIVE purchase orders and keeps the PO's
running ``delivered_tons`` total in step with them.

Invariants enforced
-------------------
* Net weight (gross - tare) is positive when a load is logged and after
  every edit.
* ``delivered_tons`` is an accumulator.  Logging adds the load's net tons;
  an edit adds ``(new_net - old_net) / pounds_per_ton``.  It is never
  recomputed from the current loads.
* Every changed field of an edit leaves one LoadEdit row.
* The PO row is locked for the whole write, so concurrent deliveries on
  the same PO apply their increments one after another.

Failure modes
-------------
* NOT_FOUND for unknown PO / load ids.
* FORBIDDEN for organizations that are not party to the PO.
* BAD_REQUEST for a non-ACTIVE PO, non-positive net weight, a PO with no
  linked listing, or an edit that changes nothing.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from haymarket_config import MarketplaceConfig
from haymarket_kernel.domain.access import require_participant
from haymarket_kernel.domain.clock import Clock
from haymarket_kernel.domain.dtos import LoadEditInfo, LoadInfo, disclosed_po_number
from haymarket_kernel.domain.identity import Actor
from haymarket_kernel.domain.weights import net_weight, tons_from_pounds
from haymarket_kernel.exceptions import (
    LoadNotFoundError,
    NoChangesError,
    NoLinkedListingError,
    NonPositiveNetWeightError,
    PurchaseOrderNotFoundError,
    PurchaseOrderStatusError,
)
from haymarket_kernel.logging_config import LogContext, get_logger
from haymarket_kernel.models.load import Load, LoadEdit
from haymarket_kernel.models.purchase_order import PurchaseOrder
from haymarket_kernel.selectors.delivery_selector import DeliverySelector
from haymarket_kernel.selectors.purchase_order_selector import PurchaseOrderSelector
from haymarket_kernel.services.numbering_service import guard_unique_flush
from haymarket_modules._service_helpers import ServiceKit
from haymarket_modules.delivery.models import (
    LOAD_FIELD_COLUMNS,
    LoadChanges,
    LogDeliveryCommand,
)
from haymarket_modules.purchase_orders.workflows import PURCHASE_ORDER_WORKFLOW

logger = get_logger("modules.delivery.service")


def _stringify(value: Any) -> str | None:
    """Edit-history form of a field value."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    return str(value)


def _differs(current: Any, new: Any) -> bool:
    if isinstance(new, Decimal) and current is not None:
        return Decimal(current) != new
    return current != new


class DeliveryService:
    """Public entry point for delivery operations."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: MarketplaceConfig | None = None,
    ):
        self._kit = ServiceKit.build(session, clock, config)
        self._session = session
        self._pounds_per_ton = self._kit.config.delivery.pounds_per_ton
        self._places = self._kit.config.delivery.display_places
        self._selector = DeliverySelector(session, self._pounds_per_ton, self._places)
        self._po_selector = PurchaseOrderSelector(session)

    def _to_info(self, load: Load, po: PurchaseOrder) -> LoadInfo:
        return LoadInfo.from_model(
            load,
            po_number=disclosed_po_number(
                po.po_number, po.signed_by_buyer_id, po.signed_by_grower_id
            ),
            pounds_per_ton=self._pounds_per_ton,
            places=self._places,
        )

    def _participant_po(self, po_id: UUID, actor: Actor, lock: bool = False) -> PurchaseOrder:
        if lock:
            po = self._kit.transitions.lock(PurchaseOrder, po_id)
        else:
            po = self._session.get(PurchaseOrder, po_id)
        if po is None:
            raise PurchaseOrderNotFoundError(str(po_id))
        require_participant(
            actor, "PurchaseOrder", po.id, po.buyer_org_id, po.grower_org_id
        )
        return po

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def log_delivery(
        self, po_id: UUID, command: LogDeliveryCommand, actor: Actor
    ) -> LoadInfo:
        """
        Record one truck load and add its net tons to the PO.

        Returns:
            The load with net weight, net tons and average bale weight.
        """
        self._kit.require_role(actor, "log_delivery")
        with LogContext.bind(actor_id=actor.user_id, entity_id=po_id, operation="log_delivery"):
            try:
                po = self._participant_po(po_id, actor, lock=True)
                allowed = PURCHASE_ORDER_WORKFLOW.sources_for("log_delivery")
                if po.status not in allowed:
                    raise PurchaseOrderStatusError(
                        str(po.id), po.status, "/".join(allowed), "log a delivery on"
                    )

                net = net_weight(command.gross_weight, command.tare_weight)
                if net <= 0:
                    raise NonPositiveNetWeightError(
                        str(command.gross_weight), str(command.tare_weight)
                    )

                listing_id = self._po_selector.linked_listing_id(po.id)
                if listing_id is None:
                    raise NoLinkedListingError(str(po.id))

                load_number = self._kit.numbering.next_load_number()
                load = Load(
                    load_number=load_number,
                    po_id=po.id,
                    listing_id=listing_id,
                    gross_weight=command.gross_weight,
                    tare_weight=command.tare_weight,
                    total_bale_count=command.total_bale_count,
                    wet_bales_count=command.wet_bales_count,
                    quality_notes=command.location,
                    delivery_datetime=self._kit.clock.now(),
                    entered_by_id=actor.user_id,
                    created_at=self._kit.clock.now(),
                    created_by_id=actor.user_id,
                )
                with guard_unique_flush(
                    self._session, self._kit.numbering.formats.load_number.sequence_name, load_number
                ):
                    self._session.add(load)

                net_tons = tons_from_pounds(net, self._pounds_per_ton)
                po.delivered_tons = Decimal(po.delivered_tons) + net_tons
                po.updated_by_id = actor.user_id
                self._session.flush()

                self._kit.auditor.record_delivery_logged(
                    load.id,
                    {
                        "load_number": load_number,
                        "po_id": po.id,
                        "gross_weight": command.gross_weight,
                        "tare_weight": command.tare_weight,
                        "net_weight": net,
                        "net_tons": net_tons,
                        "total_bale_count": command.total_bale_count,
                        "wet_bales_count": command.wet_bales_count,
                    },
                    actor.user_id,
                )
                self._session.commit()
            except Exception:
                self._session.rollback()
                logger.warning("delivery_log_rolled_back", exc_info=True)
                raise

            logger.info(
                "delivery_logged",
                extra={
                    "load_id": str(load.id),
                    "load_number": load_number,
                    "net_weight": str(net),
                    "delivered_tons": str(po.delivered_tons),
                },
            )
            return self._to_info(load, po)

    def edit_load(self, load_id: UUID, changes: LoadChanges, actor: Actor) -> LoadInfo:
        """
        Correct a recorded load.

        Only fields whose value actually changes are written and logged.
        The PO total moves by the change in net tons, if any.
        """
        self._kit.require_role(actor, "edit_load")
        try:
            load = self._kit.transitions.lock(Load, load_id)
            if load is None:
                raise LoadNotFoundError(str(load_id))
            po = self._participant_po(load.po_id, actor, lock=True)

            changed: dict[str, Any] = {}
            for name, value in changes.provided().items():
                if _differs(getattr(load, LOAD_FIELD_COLUMNS[name]), value):
                    changed[name] = value
            if not changed:
                raise NoChangesError("Load", str(load.id))

            old_net = load.net_weight
            new_net = net_weight(
                changed.get("gross_weight", load.gross_weight),
                changed.get("tare_weight", load.tare_weight),
            )
            if new_net <= 0:
                raise NonPositiveNetWeightError(
                    str(changed.get("gross_weight", load.gross_weight)),
                    str(changed.get("tare_weight", load.tare_weight)),
                )

            old_snapshot = {
                name: getattr(load, column) for name, column in LOAD_FIELD_COLUMNS.items()
            }
            edited_at = self._kit.clock.now()
            prior_edits = self._session.execute(
                select(func.count()).select_from(LoadEdit).where(LoadEdit.load_id == load.id)
            ).scalar_one()

            for i, (name, value) in enumerate(changed.items()):
                column = LOAD_FIELD_COLUMNS[name]
                self._session.add(
                    LoadEdit(
                        load_id=load.id,
                        edited_by_id=actor.user_id,
                        field_name=name,
                        old_value=_stringify(getattr(load, column)),
                        new_value=_stringify(value),
                        edited_at=edited_at,
                        edit_seq=prior_edits + i,
                    )
                )
                setattr(load, column, value)
            load.updated_by_id = actor.user_id

            tons_diff = tons_from_pounds(new_net - old_net, self._pounds_per_ton)
            if tons_diff != 0:
                po.delivered_tons = Decimal(po.delivered_tons) + tons_diff
                po.updated_by_id = actor.user_id
            self._session.flush()

            self._kit.auditor.record_load_edited(load.id, old_snapshot, changed, actor.user_id)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "load_edited",
            extra={
                "load_id": str(load_id),
                "fields": list(changed),
                "tons_diff": str(tons_diff),
            },
        )
        return self._to_info(load, po)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_deliveries(self, po_id: UUID, actor: Actor) -> tuple[LoadInfo, ...]:
        """Loads on one PO, most recent first."""
        self._participant_po(po_id, actor)
        return self._selector.loads_for_purchase_order(po_id)

    def list_loads(self, actor: Actor) -> tuple[LoadInfo, ...]:
        """Loads across every PO the actor's organization is party to."""
        return self._selector.loads_for_organization(actor.organization_id)

    def get_load(self, load_id: UUID, actor: Actor) -> LoadInfo:
        load = self._session.get(Load, load_id)
        if load is None:
            raise LoadNotFoundError(str(load_id))
        po = self._participant_po(load.po_id, actor)
        return self._to_info(load, po)

    def get_load_history(self, load_id: UUID, actor: Actor) -> tuple[LoadEditInfo, ...]:
        load = self._session.get(Load, load_id)
        if load is None:
            raise LoadNotFoundError(str(load_id))
        self._participant_po(load.po_id, actor)
        return self._selector.history(load_id)
