"""
Purchase Order commands.

Signature, term and operational-tag inputs.  Each validates its shape on
construction and raises InputValidationError listing every bad field.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from haymarket_kernel.models.purchase_order import PurchaseOrderStatus
from haymarket_modules._validation import FieldErrors, as_date, as_decimal, as_text


@dataclass(frozen=True)
class SignCommand:
    typed_name: str
    signature_image: str | None = None

    def __post_init__(self) -> None:
        errors = FieldErrors()
        as_text(errors, "typed_name", self.typed_name, optional=False, min_length=2)
        as_text(errors, "signature_image", self.signature_image)
        errors.raise_if_any()


@dataclass(frozen=True)
class AcceptListingCommand:
    """Buy a listing at its asking price and sign as buyer in one step."""

    listing_id: UUID
    typed_name: str
    signature_image: str | None = None

    def __post_init__(self) -> None:
        errors = FieldErrors()
        errors.check(isinstance(self.listing_id, UUID), "listing_id", "Expected a UUID")
        as_text(errors, "typed_name", self.typed_name, optional=False, min_length=2)
        as_text(errors, "signature_image", self.signature_image)
        errors.raise_if_any()


TERM_FIELDS = (
    "delivery_start_date",
    "delivery_end_date",
    "max_moisture_percent",
    "quality_notes",
)


@dataclass(frozen=True)
class TermsUpdate:
    """Contract terms; ``None`` leaves a term unchanged."""

    delivery_start_date: date | None = None
    delivery_end_date: date | None = None
    max_moisture_percent: Decimal | None = None
    quality_notes: str | None = None

    def __post_init__(self) -> None:
        errors = FieldErrors()
        object.__setattr__(
            self, "delivery_start_date",
            as_date(errors, "delivery_start_date", self.delivery_start_date),
        )
        object.__setattr__(
            self, "delivery_end_date",
            as_date(errors, "delivery_end_date", self.delivery_end_date),
        )
        object.__setattr__(
            self,
            "max_moisture_percent",
            as_decimal(
                errors, "max_moisture_percent", self.max_moisture_percent,
                optional=True, minimum=0, maximum=100,
            ),
        )
        as_text(errors, "quality_notes", self.quality_notes)
        errors.raise_if_any()

    def provided(self) -> dict[str, Any]:
        return {
            name: getattr(self, name)
            for name in TERM_FIELDS
            if getattr(self, name) is not None
        }


@dataclass(frozen=True)
class CenterUpdate:
    """Operational tags, editable in any status."""

    center: str | None = None
    hay_class: str | None = None

    def __post_init__(self) -> None:
        errors = FieldErrors()
        as_text(errors, "center", self.center, min_length=1, max_length=100)
        as_text(errors, "hay_class", self.hay_class, max_length=100)
        errors.raise_if_any()

    def provided(self) -> dict[str, Any]:
        return {
            name: getattr(self, name)
            for name in ("center", "hay_class")
            if getattr(self, name) is not None
        }


@dataclass(frozen=True)
class PurchaseOrderFilters:
    status: str | None = None
    center: str | None = None

    def __post_init__(self) -> None:
        errors = FieldErrors()
        if self.status is not None:
            errors.check(
                self.status in {s.value for s in PurchaseOrderStatus},
                "status",
                "Unknown purchase order status",
            )
        errors.raise_if_any()
