"""
Delivery commands.

Scale-ticket inputs for a new load and the field patch for editing one.
Weights are pounds.  ``location`` is stored in the load's notes column.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from haymarket_modules._validation import FieldErrors, as_decimal, as_int, as_text

# Patch field -> Load column
LOAD_FIELD_COLUMNS = {
    "total_bale_count": "total_bale_count",
    "wet_bales_count": "wet_bales_count",
    "gross_weight": "gross_weight",
    "tare_weight": "tare_weight",
    "location": "quality_notes",
}


def _check_ticket(errors: FieldErrors, obj: Any, optional: bool) -> None:
    object.__setattr__(
        obj,
        "total_bale_count",
        as_int(errors, "total_bale_count", obj.total_bale_count, optional=optional, minimum=1),
    )
    object.__setattr__(
        obj,
        "wet_bales_count",
        as_int(errors, "wet_bales_count", obj.wet_bales_count, optional=optional, minimum=0),
    )
    for name in ("gross_weight", "tare_weight"):
        object.__setattr__(
            obj,
            name,
            as_decimal(errors, name, getattr(obj, name), optional=optional, positive=True),
        )
    as_text(errors, "location", obj.location)


@dataclass(frozen=True)
class LogDeliveryCommand:
    total_bale_count: int
    wet_bales_count: int
    gross_weight: Decimal
    tare_weight: Decimal
    location: str | None = None

    def __post_init__(self) -> None:
        errors = FieldErrors()
        _check_ticket(errors, self, optional=False)
        errors.raise_if_any()

    @property
    def net_weight(self) -> Decimal:
        return self.gross_weight - self.tare_weight


@dataclass(frozen=True)
class LoadChanges:
    """A patch; ``None`` leaves the field as recorded."""

    total_bale_count: int | None = None
    wet_bales_count: int | None = None
    gross_weight: Decimal | None = None
    tare_weight: Decimal | None = None
    location: str | None = None

    def __post_init__(self) -> None:
        errors = FieldErrors()
        _check_ticket(errors, self, optional=True)
        errors.raise_if_any()

    def provided(self) -> dict[str, Any]:
        return {
            name: getattr(self, name)
            for name in LOAD_FIELD_COLUMNS
            if getattr(self, name) is not None
        }
