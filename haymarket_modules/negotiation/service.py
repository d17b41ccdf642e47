"""
Negotiation Module Service (``haymarket_modules.negotiation.service``).

Responsibility
--------------
Offer threads between a buyer and a grower on one listing: opening offer,
counter, accept (which forms the contract) and reject, plus the thread
read paths.

Invariants enforced
-------------------
* At most one pending node per thread.  ``counter`` moves the target to
  countered and inserts the new pending reply in the same transaction.
* Replies always point at the thread root (``parent_id = root id``) and
  carry ``round_number = last round + 1``.
* The pending check and the status write are one guarded update; a second
  writer racing on the same node gets NegotiationNotPendingError.
* Only the recipient of an offer may counter, accept or reject it.
* Firm-priced listings take no offers or counters; they are bought through
  the purchase order service at the listed price.

Failure modes
-------------
* NOT_FOUND -> BAD_REQUEST (not pending) -> FORBIDDEN (own offer) ->
  FORBIDDEN (non-participant), checked in that order.
  A counter on a firm-priced listing then fails with BAD_REQUEST (firm price).
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from haymarket_config import MarketplaceConfig
from haymarket_kernel.domain.access import require_participant
from haymarket_kernel.domain.clock import Clock
from haymarket_kernel.domain.dtos import (
    AcceptedNegotiation,
    NegotiationInfo,
    Page,
    PageRequest,
    PurchaseOrderInfo,
    ThreadInfo,
)
from haymarket_kernel.domain.identity import Actor
from haymarket_kernel.exceptions import (
    FirmPriceError,
    InputValidationError,
    ListingNotFoundError,
    ListingUnavailableError,
    NegotiationNotFoundError,
    NegotiationNotPendingError,
    OwnOfferActionError,
    SelfDealingError,
)
from haymarket_kernel.logging_config import LogContext, get_logger
from haymarket_kernel.models.listing import Listing, ListingStatus
from haymarket_kernel.models.negotiation import Negotiation
from haymarket_kernel.selectors.negotiation_selector import NegotiationSelector
from haymarket_modules._service_helpers import ServiceKit
from haymarket_modules.negotiation.models import CounterCommand, OfferCommand, ThreadQuery
from haymarket_modules.negotiation.workflows import NEGOTIATION_WORKFLOW
from haymarket_modules.purchase_orders.formation import form_contract

logger = get_logger("modules.negotiation.service")


class NegotiationService:
    """Public entry point for negotiation operations."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: MarketplaceConfig | None = None,
    ):
        self._kit = ServiceKit.build(session, clock, config)
        self._session = session
        self._selector = NegotiationSelector(session)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _lock_actionable(self, negotiation_id: UUID, action: str, actor: Actor) -> Negotiation:
        """Lock the node and check it is pending and addressed to ``actor``."""
        negotiation = self._kit.transitions.lock(Negotiation, negotiation_id)
        if negotiation is None:
            raise NegotiationNotFoundError(str(negotiation_id))
        if negotiation.status not in NEGOTIATION_WORKFLOW.sources_for(action):
            raise NegotiationNotPendingError(str(negotiation.id), negotiation.status, action)
        if negotiation.offered_by_org_id == actor.organization_id:
            raise OwnOfferActionError(str(negotiation.id), action)
        require_participant(
            actor,
            "Negotiation",
            negotiation.id,
            negotiation.buyer_org_id,
            negotiation.grower_org_id,
        )
        return negotiation

    def _claim_pending(self, negotiation: Negotiation, action: str) -> None:
        """Move a pending node to the outcome of ``action``, or fail if it moved first."""
        transition = NEGOTIATION_WORKFLOW.transition_for(negotiation.status, action)
        if transition is None or not self._kit.transitions.compare_and_set(
            Negotiation,
            negotiation.id,
            transition.from_state,
            {"status": transition.to_state},
        ):
            raise NegotiationNotPendingError(str(negotiation.id), negotiation.status, action)

    def _next_round(self, thread_id: UUID) -> int:
        last = self._session.execute(
            select(func.max(Negotiation.round_number)).where(
                or_(Negotiation.id == thread_id, Negotiation.parent_id == thread_id)
            )
        ).scalar_one()
        return (last or 0) + 1

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    def create_offer(self, command: OfferCommand, actor: Actor) -> NegotiationInfo:
        """Open a thread with a pending offer on another organization's listing."""
        self._kit.require_role(actor, "create_offer")
        with LogContext.bind(actor_id=actor.user_id, organization_id=actor.organization_id):
            try:
                listing = self._session.get(Listing, command.listing_id)
                if listing is None:
                    raise ListingNotFoundError(str(command.listing_id))
                if listing.status != ListingStatus.AVAILABLE.value:
                    raise ListingUnavailableError(str(listing.id), listing.status)
                if listing.organization_id == actor.organization_id:
                    raise SelfDealingError(str(listing.id), str(actor.organization_id))
                if listing.firm_price:
                    raise FirmPriceError(str(listing.id))

                negotiation = Negotiation(
                    listing_id=listing.id,
                    buyer_org_id=actor.organization_id,
                    grower_org_id=listing.organization_id,
                    offered_price_per_ton=command.offered_price_per_ton,
                    offered_tons=command.offered_tons,
                    message=command.message,
                    offered_by_org_id=actor.organization_id,
                    offered_by_user_id=actor.user_id,
                    status=NEGOTIATION_WORKFLOW.initial_state,
                    parent_id=None,
                    round_number=1,
                    created_at=self._kit.clock.now(),
                    created_by_id=actor.user_id,
                )
                self._session.add(negotiation)
                self._session.flush()
                self._session.commit()
            except Exception:
                self._session.rollback()
                raise

            logger.info(
                "offer_created",
                extra={
                    "negotiation_id": str(negotiation.id),
                    "listing_id": str(listing.id),
                    "offered_price_per_ton": str(command.offered_price_per_ton),
                },
            )
            return NegotiationInfo.from_model(negotiation)

    def counter(
        self, negotiation_id: UUID, command: CounterCommand, actor: Actor
    ) -> NegotiationInfo:
        """Answer a pending offer with a new one; the old node becomes countered."""
        self._kit.require_role(actor, "counter")
        try:
            target = self._lock_actionable(negotiation_id, "counter", actor)
            listing = self._session.get(Listing, target.listing_id)
            if listing is not None and listing.firm_price:
                raise FirmPriceError(str(listing.id))
            thread_id = target.thread_id
            round_number = self._next_round(thread_id)
            self._claim_pending(target, "counter")

            reply = Negotiation(
                listing_id=target.listing_id,
                buyer_org_id=target.buyer_org_id,
                grower_org_id=target.grower_org_id,
                offered_price_per_ton=command.offered_price_per_ton,
                offered_tons=command.offered_tons,
                message=command.message,
                offered_by_org_id=actor.organization_id,
                offered_by_user_id=actor.user_id,
                status=NEGOTIATION_WORKFLOW.initial_state,
                parent_id=thread_id,
                round_number=round_number,
                created_at=self._kit.clock.now(),
                created_by_id=actor.user_id,
            )
            self._session.add(reply)
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "offer_countered",
            extra={
                "negotiation_id": str(negotiation_id),
                "reply_id": str(reply.id),
                "thread_id": str(thread_id),
                "round_number": round_number,
            },
        )
        return NegotiationInfo.from_model(reply)

    def accept(self, negotiation_id: UUID, actor: Actor) -> AcceptedNegotiation:
        """
        Accept a pending offer and form the contract.

        One transaction: node accepted, DRAFT purchase order at the offered
        price, POStack link, ``purchase_order_id`` set on the node, listing
        under contract, ACCEPT_NEGOTIATION audit event.  The returned PO
        carries no number since nobody has signed yet.
        """
        self._kit.require_role(actor, "accept")
        logger.info(
            "offer_accept_started",
            extra={"negotiation_id": str(negotiation_id), "actor_id": str(actor.user_id)},
        )
        try:
            target = self._lock_actionable(negotiation_id, "accept", actor)
            listing = self._kit.transitions.lock(Listing, target.listing_id)
            if listing is None:
                raise ListingNotFoundError(str(target.listing_id))

            if target.offered_tons is not None:
                contracted_tons = Decimal(target.offered_tons)
            elif listing.estimated_tons is not None:
                contracted_tons = Decimal(listing.estimated_tons)
            else:
                contracted_tons = Decimal("0")
            price_per_ton = Decimal(target.offered_price_per_ton)

            self._claim_pending(target, "accept")
            po = form_contract(
                self._kit,
                listing,
                buyer_org_id=target.buyer_org_id,
                price_per_ton=price_per_ton,
                contracted_tons=contracted_tons,
                actor=actor,
            )
            target.purchase_order_id = po.id
            target.updated_by_id = actor.user_id
            self._session.flush()

            self._kit.auditor.record_negotiation_accepted(
                target.id,
                po.id,
                po.po_number,
                contracted_tons,
                price_per_ton,
                actor.user_id,
            )
            self._session.commit()
        except Exception:
            self._session.rollback()
            logger.warning(
                "offer_accept_rolled_back",
                extra={"negotiation_id": str(negotiation_id)},
                exc_info=True,
            )
            raise

        logger.info(
            "offer_accepted",
            extra={
                "negotiation_id": str(negotiation_id),
                "po_id": str(po.id),
                "contracted_tons": str(contracted_tons),
            },
        )
        return AcceptedNegotiation(
            negotiation=NegotiationInfo.from_model(target),
            purchase_order=PurchaseOrderInfo.from_model(po, listing.id),
        )

    def reject(self, negotiation_id: UUID, actor: Actor) -> NegotiationInfo:
        """Turn a pending offer down.  The thread ends here."""
        self._kit.require_role(actor, "reject")
        try:
            target = self._lock_actionable(negotiation_id, "reject", actor)
            self._claim_pending(target, "reject")
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info("offer_rejected", extra={"negotiation_id": str(negotiation_id)})
        return NegotiationInfo.from_model(target)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def get_thread(self, negotiation_id: UUID, actor: Actor) -> ThreadInfo:
        """The whole thread containing ``negotiation_id``, in round order."""
        node = self._selector.get(negotiation_id)
        if node is None:
            raise NegotiationNotFoundError(str(negotiation_id))
        require_participant(
            actor, "Negotiation", negotiation_id, node.buyer_org_id, node.grower_org_id
        )
        return self._selector.thread(node.thread_id)

    def list_threads(
        self, actor: Actor, query: ThreadQuery | None = None
    ) -> Page[ThreadInfo]:
        query = query or ThreadQuery(limit=self._kit.config.pagination.default_limit)
        max_limit = self._kit.config.pagination.max_limit
        if query.limit > max_limit:
            raise InputValidationError(
                [{"field": "limit", "message": f"Must be at most {max_limit}"}]
            )
        return self._selector.threads_for_organization(
            actor.organization_id,
            PageRequest(page=query.page, limit=query.limit),
            status=query.status,
        )
