"""
Listing commands.

The nouns a caller hands to ``ListingService``.  Each validates its own
shape on construction.
"""

from dataclasses import dataclass, fields
from decimal import Decimal
from typing import Any
from uuid import UUID

from haymarket_kernel.models.listing import ListingStatus
from haymarket_modules._validation import FieldErrors, as_decimal, as_int, as_text, validate_page


def _check_descriptive(errors: FieldErrors, obj: Any, require_price: bool) -> None:
    object.__setattr__(
        obj,
        "price_per_ton",
        as_decimal(
            errors, "price_per_ton", obj.price_per_ton,
            optional=not require_price, positive=True,
        ),
    )
    object.__setattr__(
        obj,
        "estimated_tons",
        as_decimal(errors, "estimated_tons", obj.estimated_tons, optional=True, positive=True),
    )
    object.__setattr__(
        obj, "bale_count", as_int(errors, "bale_count", obj.bale_count, optional=True, minimum=1)
    )
    object.__setattr__(
        obj,
        "moisture_percent",
        as_decimal(
            errors, "moisture_percent", obj.moisture_percent,
            optional=True, minimum=0, maximum=100,
        ),
    )
    for name in ("product_type", "bale_type", "trucking_coordinated_by"):
        as_text(errors, name, getattr(obj, name), max_length=100)
    as_text(errors, "notes", obj.notes)


@dataclass(frozen=True)
class CreateListingCommand:
    price_per_ton: Decimal
    estimated_tons: Decimal | None = None
    bale_count: int | None = None
    product_type: str | None = None
    bale_type: str | None = None
    moisture_percent: Decimal | None = None
    notes: str | None = None
    firm_price: bool = False
    is_delivered_price: bool = False
    trucking_coordinated_by: str | None = None

    def __post_init__(self) -> None:
        errors = FieldErrors()
        _check_descriptive(errors, self, require_price=True)
        errors.raise_if_any()


@dataclass(frozen=True)
class ListingChanges:
    """A patch; ``None`` means "leave as is".  Status is not patchable."""

    price_per_ton: Decimal | None = None
    estimated_tons: Decimal | None = None
    bale_count: int | None = None
    product_type: str | None = None
    bale_type: str | None = None
    moisture_percent: Decimal | None = None
    notes: str | None = None
    firm_price: bool | None = None
    is_delivered_price: bool | None = None
    trucking_coordinated_by: str | None = None

    def __post_init__(self) -> None:
        errors = FieldErrors()
        _check_descriptive(errors, self, require_price=False)
        errors.raise_if_any()

    def provided(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass(frozen=True)
class ListingFilters:
    status: str | None = ListingStatus.AVAILABLE.value
    organization_id: UUID | None = None
    product_type: str | None = None
    min_price: Decimal | None = None
    max_price: Decimal | None = None
    page: int = 1
    limit: int = 20

    def __post_init__(self) -> None:
        errors = FieldErrors()
        if self.status is not None:
            errors.check(
                self.status in {s.value for s in ListingStatus},
                "status",
                "Unknown listing status",
            )
        object.__setattr__(
            self, "min_price",
            as_decimal(errors, "min_price", self.min_price, optional=True, minimum=0),
        )
        object.__setattr__(
            self, "max_price",
            as_decimal(errors, "max_price", self.max_price, optional=True, minimum=0),
        )
        validate_page(errors, self.page, self.limit)
        errors.raise_if_any()
