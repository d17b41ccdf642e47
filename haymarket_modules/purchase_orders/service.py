"""
Purchase Order Module Service (``haymarket_modules.purchase_orders.service``).

Responsibility
--------------
Contract lifecycle after formation: accept a listing at its asking price
(buyer signs in the same step), edit terms while unsigned, bilateral
signature, manual close, operational tags, and the contract read paths.

Invariants enforced
-------------------
* Each public write owns the transaction (commit on success, rollback and
  re-raise on any exception).
* ``sign`` is the only path to ACTIVE, and only when the other side has
  already signed; ``signed_at`` is stamped on that transition.
* Terms are frozen as soon as either side signs.
* ``close`` forces ``delivered_tons = contracted_tons``.  It does not
  reconcile against logged loads.
* Every returned DTO hides the PO number until both sides have signed.

Failure modes
-------------
* NOT_FOUND for unknown PO / listing ids.
* FORBIDDEN for organizations that are not party to the PO.
* BAD_REQUEST for status, signature and terms-lock preconditions.

Audit relevance
---------------
ACCEPT_LISTING_AND_SIGN and SIGN_PO events carry the typed name and
signature image; ``get_contract`` rebuilds the signatures from them.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from haymarket_config import MarketplaceConfig
from haymarket_kernel.domain.access import require_participant, side_of
from haymarket_kernel.domain.clock import Clock
from haymarket_kernel.domain.dtos import (
    ContractInfo,
    PickupInfo,
    PurchaseOrderInfo,
)
from haymarket_kernel.domain.identity import Actor
from haymarket_kernel.exceptions import (
    AlreadySignedError,
    ListingNotFoundError,
    ListingUnavailableError,
    NoChangesError,
    PurchaseOrderNotFoundError,
    PurchaseOrderStatusError,
    SelfDealingError,
    TermsLockedError,
)
from haymarket_kernel.logging_config import get_logger
from haymarket_kernel.models.listing import Listing, ListingStatus
from haymarket_kernel.models.negotiation import Negotiation, NegotiationStatus
from haymarket_kernel.models.purchase_order import PurchaseOrder, PurchaseOrderStatus
from haymarket_kernel.selectors.purchase_order_selector import PurchaseOrderSelector
from haymarket_modules._service_helpers import ServiceKit
from haymarket_modules.purchase_orders.formation import form_contract
from haymarket_modules.purchase_orders.models import (
    TERM_FIELDS,
    AcceptListingCommand,
    CenterUpdate,
    PurchaseOrderFilters,
    SignCommand,
    TermsUpdate,
)
from haymarket_modules.purchase_orders.workflows import PURCHASE_ORDER_WORKFLOW

logger = get_logger("modules.purchase_orders.service")

ACCEPTED_AT_LISTED_PRICE = "Accepted at listed price."


class PurchaseOrderService:
    """
    Public entry point for purchase order operations.

    Contract
    --------
    * Every method takes the calling ``Actor`` explicitly.
    * Writes return the refreshed, redacted ``PurchaseOrderInfo``.

    Non-goals
    ---------
    * Does not create POs from negotiations; ``NegotiationService.accept``
      does, through the same ``form_contract`` step.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: MarketplaceConfig | None = None,
    ):
        self._kit = ServiceKit.build(session, clock, config)
        self._session = session
        self._selector = PurchaseOrderSelector(session)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _lock_for_participant(self, po_id: UUID, actor: Actor) -> PurchaseOrder:
        po = self._kit.transitions.lock(PurchaseOrder, po_id)
        if po is None:
            raise PurchaseOrderNotFoundError(str(po_id))
        require_participant(
            actor, "PurchaseOrder", po.id, po.buyer_org_id, po.grower_org_id
        )
        return po

    def _require_status(self, po: PurchaseOrder, action: str, verb: str) -> None:
        if po.status not in PURCHASE_ORDER_WORKFLOW.sources_for(action):
            raise PurchaseOrderStatusError(
                str(po.id), po.status, "/".join(PURCHASE_ORDER_WORKFLOW.sources_for(action)), verb
            )

    def _info(self, po: PurchaseOrder) -> PurchaseOrderInfo:
        return PurchaseOrderInfo.from_model(po, self._selector.linked_listing_id(po.id))

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def accept_listing_at_price(
        self, command: AcceptListingCommand, actor: Actor
    ) -> PurchaseOrderInfo:
        """
        Buy the whole listing at its asking price.

        One transaction: an accepted negotiation snapshot, a DRAFT PO with
        the buyer's signature, the POStack link, the listing taken off the
        market, and the ACCEPT_LISTING_AND_SIGN audit event.
        """
        self._kit.require_role(actor, "accept_listing_at_price")
        logger.info(
            "accept_listing_started",
            extra={"listing_id": str(command.listing_id), "actor_id": str(actor.user_id)},
        )
        try:
            listing = self._kit.transitions.lock(Listing, command.listing_id)
            if listing is None:
                raise ListingNotFoundError(str(command.listing_id))
            if listing.status != ListingStatus.AVAILABLE.value:
                raise ListingUnavailableError(str(listing.id), listing.status)
            if listing.organization_id == actor.organization_id:
                raise SelfDealingError(str(listing.id), str(actor.organization_id))

            contracted_tons = (
                Decimal(listing.estimated_tons)
                if listing.estimated_tons is not None
                else Decimal("0")
            )
            snapshot = Negotiation(
                listing_id=listing.id,
                buyer_org_id=actor.organization_id,
                grower_org_id=listing.organization_id,
                offered_price_per_ton=listing.price_per_ton,
                offered_tons=listing.estimated_tons,
                message=ACCEPTED_AT_LISTED_PRICE,
                offered_by_org_id=actor.organization_id,
                offered_by_user_id=actor.user_id,
                status=NegotiationStatus.ACCEPTED.value,
                parent_id=None,
                round_number=1,
                created_at=self._kit.clock.now(),
                created_by_id=actor.user_id,
            )
            self._session.add(snapshot)

            po = form_contract(
                self._kit,
                listing,
                buyer_org_id=actor.organization_id,
                price_per_ton=Decimal(listing.price_per_ton),
                contracted_tons=contracted_tons,
                actor=actor,
                signed_by_buyer_id=actor.user_id,
            )
            snapshot.purchase_order_id = po.id
            self._session.flush()

            self._kit.auditor.record_listing_accepted_and_signed(
                po.id,
                listing.id,
                command.typed_name,
                command.signature_image,
                actor.user_id,
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            logger.warning(
                "accept_listing_rolled_back",
                extra={"listing_id": str(command.listing_id)},
                exc_info=True,
            )
            raise

        logger.info(
            "accept_listing_completed",
            extra={"listing_id": str(command.listing_id), "po_id": str(po.id)},
        )
        return self._info(po)

    def update_terms(
        self, po_id: UUID, terms: TermsUpdate, actor: Actor
    ) -> PurchaseOrderInfo:
        """Patch delivery window, moisture cap and quality notes on an unsigned DRAFT."""
        self._kit.require_role(actor, "update_terms")
        try:
            po = self._lock_for_participant(po_id, actor)
            self._require_status(po, "update_terms", "edit terms on")
            if po.any_signed:
                raise TermsLockedError(str(po.id))

            provided = terms.provided()
            if not provided:
                raise NoChangesError("PurchaseOrder", str(po.id))

            old_values = {name: getattr(po, name) for name in TERM_FIELDS}
            for name, value in provided.items():
                setattr(po, name, value)
            po.updated_by_id = actor.user_id
            self._session.flush()

            self._kit.auditor.record_terms_updated(
                po.id, old_values, provided, actor.user_id
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "po_terms_updated",
            extra={"po_id": str(po_id), "fields": sorted(provided)},
        )
        return self._info(po)

    def sign(self, po_id: UUID, command: SignCommand, actor: Actor) -> PurchaseOrderInfo:
        """
        Sign for the caller's side.

        The second signature moves the PO to ACTIVE and stamps signed_at;
        that is the only way a PO becomes ACTIVE.
        """
        self._kit.require_role(actor, "sign")
        try:
            po = self._lock_for_participant(po_id, actor)
            self._require_status(po, "sign", "sign")

            side = side_of(actor, po.buyer_org_id)
            own_column = "signed_by_buyer_id" if side == "buyer" else "signed_by_grower_id"
            other_column = "signed_by_grower_id" if side == "buyer" else "signed_by_buyer_id"
            if getattr(po, own_column) is not None:
                raise AlreadySignedError(str(po.id), side)

            values: dict[str, Any] = {own_column: actor.user_id, "updated_by_id": actor.user_id}
            both_signed = getattr(po, other_column) is not None
            action = "countersign" if both_signed else "sign"
            transition = PURCHASE_ORDER_WORKFLOW.transition_for(po.status, action)
            if transition.to_state != po.status:
                values["status"] = transition.to_state
                values["signed_at"] = self._kit.clock.now()

            if not self._kit.transitions.compare_and_set(
                PurchaseOrder, po.id, transition.from_state, values
            ):
                raise PurchaseOrderStatusError(str(po.id), po.status, "DRAFT", "sign")

            self._kit.auditor.record_po_signed(
                po.id,
                side,
                command.typed_name,
                command.signature_image,
                both_signed,
                actor.user_id,
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "po_signed",
            extra={"po_id": str(po_id), "side": side, "both_signed": both_signed},
        )
        return self._info(po)

    def close(self, po_id: UUID, actor: Actor) -> PurchaseOrderInfo:
        """
        Mark an ACTIVE contract COMPLETED and set delivered tons to contracted.

        Manual override: logged loads are not summed or compared.
        """
        self._kit.require_role(actor, "close")
        try:
            po = self._lock_for_participant(po_id, actor)
            self._require_status(po, "close", "close")

            old_status = po.status
            old_delivered = Decimal(po.delivered_tons)
            contracted = Decimal(po.contracted_tons)
            transition = PURCHASE_ORDER_WORKFLOW.transition_for(po.status, "close")
            if not self._kit.transitions.compare_and_set(
                PurchaseOrder,
                po.id,
                transition.from_state,
                {
                    "status": transition.to_state,
                    "delivered_tons": contracted,
                    "completed_at": self._kit.clock.now(),
                    "updated_by_id": actor.user_id,
                },
            ):
                raise PurchaseOrderStatusError(str(po.id), po.status, "ACTIVE", "close")

            self._kit.auditor.record_contract_closed(
                po.id, old_status, old_delivered, contracted, actor.user_id
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "po_closed",
            extra={
                "po_id": str(po_id),
                "delivered_tons_before": str(old_delivered),
                "contracted_tons": str(contracted),
            },
        )
        return self._info(po)

    def set_center(
        self, po_id: UUID, update: CenterUpdate, actor: Actor
    ) -> PurchaseOrderInfo:
        """Set the operational center and/or hay class, in any status."""
        self._kit.require_role(actor, "set_center")
        try:
            po = self._lock_for_participant(po_id, actor)
            provided = update.provided()
            if not provided:
                raise NoChangesError("PurchaseOrder", str(po.id))

            old_values = {name: getattr(po, name) for name in provided}
            for name, value in provided.items():
                setattr(po, name, value)
            po.updated_by_id = actor.user_id
            self._session.flush()

            self._kit.auditor.record_center_set(po.id, old_values, provided, actor.user_id)
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("po_center_set", extra={"po_id": str(po_id), **provided})
        return self._info(po)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_purchase_order(self, po_id: UUID, actor: Actor) -> PurchaseOrderInfo:
        info = self._selector.get(po_id)
        if info is None:
            raise PurchaseOrderNotFoundError(str(po_id))
        require_participant(
            actor, "PurchaseOrder", po_id, info.buyer_org_id, info.grower_org_id
        )
        return info

    def list_purchase_orders(
        self, actor: Actor, filters: PurchaseOrderFilters | None = None
    ) -> tuple[PurchaseOrderInfo, ...]:
        """POs the actor's organization is party to, newest first."""
        filters = filters or PurchaseOrderFilters()
        return self._selector.list_for_organization(
            actor.organization_id, status=filters.status, center=filters.center
        )

    def get_contract(self, po_id: UUID, actor: Actor) -> ContractInfo:
        """The PO plus both signatures as recorded in the audit trail."""
        info = self.get_purchase_order(po_id, actor)
        buyer, grower = self._selector.signatures(po_id)
        return ContractInfo(purchase_order=info, buyer_signature=buyer, grower_signature=grower)

    def get_pickup_info(self, po_id: UUID, actor: Actor) -> PickupInfo:
        """Hauling details for an ACTIVE contract."""
        info = self.get_purchase_order(po_id, actor)
        if info.status != PurchaseOrderStatus.ACTIVE.value:
            raise PurchaseOrderStatusError(
                str(po_id), info.status, PurchaseOrderStatus.ACTIVE.value, "view pickup info for"
            )
        listing = (
            self._session.get(Listing, info.listing_id) if info.listing_id else None
        )
        return PickupInfo(
            purchase_order_id=info.id,
            po_number=info.po_number,
            buyer_org_id=info.buyer_org_id,
            grower_org_id=info.grower_org_id,
            contracted_tons=info.contracted_tons,
            delivered_tons=info.delivered_tons,
            price_per_ton=info.price_per_ton,
            delivery_start_date=info.delivery_start_date,
            delivery_end_date=info.delivery_end_date,
            center=info.center,
            hay_class=info.hay_class,
            listing_id=info.listing_id,
            stack_id=listing.stack_id if listing else None,
            product_type=listing.product_type if listing else None,
            bale_type=listing.bale_type if listing else None,
            bale_count=listing.bale_count if listing else None,
        )
