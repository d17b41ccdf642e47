"""
MarketplaceConfig schema.

Frozen dataclasses the loader parses ``defaults.yaml`` (plus any override
file and environment variables) into.  Nothing here reads files.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass(frozen=True)
class NumberingDef:
    """External format of one issued identifier."""

    prefix: str
    first_value: int


@dataclass(frozen=True)
class DeliveryDef:
    pounds_per_ton: Decimal = Decimal("2000")
    display_places: int = 2


@dataclass(frozen=True)
class PaginationDef:
    default_limit: int = 20
    max_limit: int = 100


@dataclass(frozen=True)
class MarketplaceConfig:
    """The runtime configuration artifact returned by ``get_active_config``."""

    database_url: str
    database_echo: bool
    log_level: str
    stack_id: NumberingDef
    po_number: NumberingDef
    load_number: NumberingDef
    delivery: DeliveryDef
    pagination: PaginationDef
    # operation name -> allowed role names
    roles: dict[str, tuple[str, ...]] = field(default_factory=dict)
    checksum: str = ""

    def roles_for(self, operation: str) -> tuple[str, ...]:
        """
        Roles allowed to run ``operation``.

        Raises:
            KeyError: if the operation has no role policy.
        """
        return self.roles[operation]
