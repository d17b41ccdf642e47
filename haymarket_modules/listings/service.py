"""
Listings Module Service (``haymarket_modules.listings.service``).

Responsibility
--------------
Creates and edits hay listings and serves the listing search.  Status is
never written here: ``available -> under_contract`` belongs to contract
formation in ``haymarket_modules.purchase_orders.formation``.

Invariants enforced
-------------------
* Each public write owns the transaction (commit on success, rollback and
  re-raise on any exception).
* A listing is visible for editing only to its owning organization; other
  organizations get NOT_FOUND, not FORBIDDEN.
* Stack ids come from the locked counter (NumberingService).
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from haymarket_config import MarketplaceConfig
from haymarket_kernel.domain.clock import Clock
from haymarket_kernel.domain.dtos import ListingInfo, Page, PageRequest
from haymarket_kernel.domain.identity import Actor
from haymarket_kernel.exceptions import (
    InputValidationError,
    ListingNotFoundError,
    NoChangesError,
)
from haymarket_kernel.logging_config import LogContext, get_logger
from haymarket_kernel.models.listing import Listing, ListingStatus
from haymarket_kernel.selectors.listing_selector import ListingSelector
from haymarket_kernel.services.numbering_service import guard_unique_flush
from haymarket_modules._service_helpers import ServiceKit
from haymarket_modules.listings.models import (
    CreateListingCommand,
    ListingChanges,
    ListingFilters,
)

logger = get_logger("modules.listings.service")


class ListingService:
    """Public entry point for listing operations."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: MarketplaceConfig | None = None,
    ):
        self._kit = ServiceKit.build(session, clock, config)
        self._session = session
        self._selector = ListingSelector(session)

    def create_listing(self, command: CreateListingCommand, actor: Actor) -> ListingInfo:
        """Insert an available listing owned by the actor's organization."""
        self._kit.require_role(actor, "create_listing")
        with LogContext.bind(actor_id=actor.user_id, organization_id=actor.organization_id):
            try:
                stack_id = self._kit.numbering.next_stack_id()
                listing = Listing(
                    organization_id=actor.organization_id,
                    stack_id=stack_id,
                    price_per_ton=command.price_per_ton,
                    estimated_tons=command.estimated_tons,
                    bale_count=command.bale_count,
                    product_type=command.product_type,
                    bale_type=command.bale_type,
                    moisture_percent=command.moisture_percent,
                    notes=command.notes,
                    status=ListingStatus.AVAILABLE.value,
                    firm_price=command.firm_price,
                    is_delivered_price=command.is_delivered_price,
                    trucking_coordinated_by=command.trucking_coordinated_by,
                    created_at=self._kit.clock.now(),
                    created_by_id=actor.user_id,
                )
                with guard_unique_flush(
                    self._session, self._kit.numbering.formats.stack_id.sequence_name, stack_id
                ):
                    self._session.add(listing)
                self._kit.auditor.record_listing_created(listing.id, stack_id, actor.user_id)
                self._session.commit()
            except Exception:
                self._session.rollback()
                logger.warning("listing_create_rolled_back", exc_info=True)
                raise

            logger.info(
                "listing_created",
                extra={
                    "listing_id": str(listing.id),
                    "stack_id": stack_id,
                    "price_per_ton": str(command.price_per_ton),
                },
            )
            return ListingInfo.from_model(listing)

    def update_listing(
        self, listing_id: UUID, changes: ListingChanges, actor: Actor
    ) -> ListingInfo:
        """Patch descriptive fields and price on the actor's own listing."""
        self._kit.require_role(actor, "update_listing")
        try:
            listing = self._kit.transitions.lock(Listing, listing_id)
            if listing is None or listing.organization_id != actor.organization_id:
                raise ListingNotFoundError(str(listing_id))

            provided = changes.provided()
            if not provided:
                raise NoChangesError("Listing", str(listing_id))

            for name, value in provided.items():
                setattr(listing, name, value)
            listing.updated_by_id = actor.user_id
            self._session.flush()
            self._session.commit()
        except Exception:
            self._session.rollback()
            raise

        logger.info(
            "listing_updated",
            extra={"listing_id": str(listing_id), "fields": sorted(provided)},
        )
        return self.get_listing(listing_id)

    def get_listing(self, listing_id: UUID) -> ListingInfo:
        """Any listing, with its purchase orders (numbers redacted until both-signed)."""
        info = self._selector.get(listing_id)
        if info is None:
            raise ListingNotFoundError(str(listing_id))
        return info

    def list_listings(self, filters: ListingFilters | None = None) -> Page[ListingInfo]:
        """Search listings; defaults to available ones, newest first."""
        filters = filters or ListingFilters(limit=self._kit.config.pagination.default_limit)
        max_limit = self._kit.config.pagination.max_limit
        if filters.limit > max_limit:
            raise InputValidationError(
                [{"field": "limit", "message": f"Must be at most {max_limit}"}]
            )
        return self._selector.search(
            PageRequest(page=filters.page, limit=filters.limit),
            status=filters.status,
            organization_id=filters.organization_id,
            product_type=filters.product_type,
            min_price=filters.min_price,
            max_price=filters.max_price,
        )
