"""
Negotiation commands.

Offer and counter-offer inputs plus the thread listing query.
"""

from dataclasses import dataclass
from decimal import Decimal
from uuid import UUID

from haymarket_kernel.models.negotiation import NegotiationStatus
from haymarket_modules._validation import FieldErrors, as_decimal, as_text, validate_page


def _check_offer_terms(errors: FieldErrors, obj) -> None:
    object.__setattr__(
        obj,
        "offered_price_per_ton",
        as_decimal(errors, "offered_price_per_ton", obj.offered_price_per_ton, positive=True),
    )
    object.__setattr__(
        obj,
        "offered_tons",
        as_decimal(errors, "offered_tons", obj.offered_tons, optional=True, positive=True),
    )
    as_text(errors, "message", obj.message)


@dataclass(frozen=True)
class OfferCommand:
    """Opening offer from a buyer on someone else's listing."""

    listing_id: UUID
    offered_price_per_ton: Decimal
    offered_tons: Decimal | None = None
    message: str | None = None

    def __post_init__(self) -> None:
        errors = FieldErrors()
        errors.check(isinstance(self.listing_id, UUID), "listing_id", "Expected a UUID")
        _check_offer_terms(errors, self)
        errors.raise_if_any()


@dataclass(frozen=True)
class CounterCommand:
    offered_price_per_ton: Decimal
    offered_tons: Decimal | None = None
    message: str | None = None

    def __post_init__(self) -> None:
        errors = FieldErrors()
        _check_offer_terms(errors, self)
        errors.raise_if_any()


@dataclass(frozen=True)
class ThreadQuery:
    status: str | None = None
    page: int = 1
    limit: int = 20

    def __post_init__(self) -> None:
        errors = FieldErrors()
        if self.status is not None:
            errors.check(
                self.status in {s.value for s in NegotiationStatus},
                "status",
                "Unknown negotiation status",
            )
        validate_page(errors, self.page, self.limit)
        errors.raise_if_any()
